import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
import spotipy
from pydantic import ValidationError
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from errors import AuthError, RemoteError
from models import ArtistRecord
from schemas import TopArtistsPage, TopTracksPage, UserProfile

logger = logging.getLogger(__name__)


def build_oauth(config):
    """Spotify OAuth helper for the authorization-code flow.

    Tokens are kept in memory only; the app never reads them back from disk.
    """
    return SpotifyOAuth(
        client_id=config.get('SPOTIPY_CLIENT_ID'),
        client_secret=config.get('SPOTIPY_CLIENT_SECRET'),
        redirect_uri=config.get('SPOTIPY_REDIRECT_URI'),
        scope=config.get('SPOTIFY_SCOPES'),
        cache_handler=MemoryCacheHandler(),
        open_browser=False,
        show_dialog=False,
    )


def exchange_code(oauth, code):
    """Trade an authorization code for a token dict."""
    try:
        token = oauth.get_access_token(code, check_cache=False)
    except (SpotifyOauthError, requests.RequestException) as e:
        raise AuthError(str(e)) from e
    if not token:
        raise AuthError("Token endpoint returned no token")
    return token


@dataclass(frozen=True)
class AuthenticatedSession:
    token: Dict[str, Any]
    user_id: str
    display_name: Optional[str]
    spotify: spotipy.Spotify


class SessionCell:
    """Holds the one authenticated session; written once, read from any thread."""

    def __init__(self):
        self._lock = threading.Lock()
        self._session = None

    def publish(self, session):
        with self._lock:
            self._session = session

    def get(self):
        with self._lock:
            return self._session


class SpotifyClient:
    def __init__(self, repository, requests_session=None, top_limit=20, time_range='medium_term'):
        self.repository = repository
        self.requests_session = requests_session
        self.top_limit = top_limit
        self.time_range = time_range
        self._cell = SessionCell()

    @classmethod
    def from_config(cls, repository, config):
        return cls(
            repository,
            top_limit=config.get('TOP_ARTISTS_LIMIT', 20),
            time_range=config.get('TOP_ARTISTS_TIME_RANGE', 'medium_term'),
        )

    @property
    def session(self):
        return self._cell.get()

    @property
    def is_authenticated(self):
        return self.session is not None

    @property
    def user_id(self):
        session = self.session
        return session.user_id if session else None

    def _connect(self, access_token):
        # Retries are disabled: a failed call surfaces to the caller as-is
        return spotipy.Spotify(
            auth=access_token,
            requests_session=self.requests_session or True,
            retries=0,
            status_retries=0,
        )

    def authenticate(self, token):
        """Register the user behind ``token`` and publish the session.

        ``token`` is the dict returned by the OAuth exchange or a bare access
        token string. The session becomes visible only after the user row is
        stored.
        """
        access_token = token.get('access_token') if isinstance(token, dict) else token
        if not access_token:
            raise AuthError("Access token not provided")

        sp = self._connect(access_token)
        try:
            data = sp.current_user()
        except SpotifyException as e:
            raise AuthError(f"Failed to fetch user profile: {e}") from e
        except requests.RequestException as e:
            raise AuthError(f"Error on profile request: {e}") from e

        try:
            profile = UserProfile.model_validate(data)
        except ValidationError as e:
            raise AuthError(f"Malformed user profile: {e}") from e

        self.repository.insert_user(profile.id, profile.display_name)

        if not isinstance(token, dict):
            token = {'access_token': access_token}
        session = AuthenticatedSession(
            token=token,
            user_id=profile.id,
            display_name=profile.display_name,
            spotify=sp,
        )
        self._cell.publish(session)
        logger.info(f"Authenticated Spotify user {profile.id} ({profile.display_name})")
        return session

    def _require_session(self):
        session = self.session
        if session is None:
            raise AuthError("Spotify client not initialized yet")
        return session

    def _get(self, what, call, page_model, **params):
        try:
            data = call(**params)
        except SpotifyException as e:
            raise RemoteError(f"Error fetching {what}: {e}") from e
        except requests.RequestException as e:
            raise RemoteError(f"Error on {what} request: {e}") from e

        try:
            return page_model.model_validate(data)
        except ValidationError as e:
            raise RemoteError(f"Malformed {what} response: {e}") from e

    def fetch_top_artists(self):
        """First page of the user's top artists, in Spotify's order."""
        session = self._require_session()
        page = self._get(
            'top artists',
            session.spotify.current_user_top_artists,
            TopArtistsPage,
            limit=self.top_limit,
            time_range=self.time_range,
        )
        logger.info(f"Fetched {len(page.items)} top artists for user {session.user_id}")
        return page.items

    def fetch_top_tracks(self):
        session = self._require_session()
        page = self._get(
            'top tracks',
            session.spotify.current_user_top_tracks,
            TopTracksPage,
            limit=self.top_limit,
            time_range=self.time_range,
        )
        return page.items


def split_snapshot(artists):
    """Split artist payloads into storable records and their genres, keeping order."""
    records = []
    genres_by_artist = {}
    for artist in artists:
        records.append(ArtistRecord(
            id=artist.id,
            name=artist.name,
            popularity=artist.popularity,
            followers=artist.followers.total,
        ))
        genres_by_artist[artist.id] = list(artist.genres)
    return records, genres_by_artist

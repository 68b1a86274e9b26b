from unittest.mock import Mock, patch

import pytest

from app import create_app
from config import TestingConfig


def artist_json(artist_id, genres, name=None, popularity=50, followers=1000):
    return {
        'external_urls': {'spotify': f'https://open.spotify.com/artist/{artist_id}'},
        'followers': {'href': None, 'total': followers},
        'genres': genres,
        'href': f'https://api.spotify.com/v1/artists/{artist_id}',
        'id': artist_id,
        'images': [],
        'name': name or f'Artist {artist_id}',
        'popularity': popularity,
        'type': 'artist',
        'uri': f'spotify:artist:{artist_id}',
    }


@pytest.fixture
def make_artist():
    return artist_json


@pytest.fixture
def mock_oauth():
    """Stand-in for SpotifyOAuth so no request leaves the test."""
    oauth = Mock()
    oauth.get_authorize_url.return_value = (
        'https://accounts.spotify.com/authorize?client_id=test-client-id&response_type=code'
    )
    oauth.get_access_token.return_value = {
        'access_token': 'test-access-token',
        'token_type': 'Bearer',
        'expires_in': 3600,
        'refresh_token': 'test-refresh-token',
        'scope': 'user-top-read user-read-private',
    }
    return oauth


@pytest.fixture
def mock_spotify():
    """Patch spotipy.Spotify with a mock that answers like the Web API."""
    sp = Mock()
    sp.current_user.return_value = {'id': 'user1', 'display_name': 'Test User', 'country': 'TR'}
    sp.current_user_top_artists.return_value = {
        'items': [artist_json('a1', ['rock', 'pop']), artist_json('a2', ['pop'])],
        'total': 2,
        'limit': 20,
        'offset': 0,
        'next': None,
    }
    sp.current_user_top_tracks.return_value = {
        'items': [
            {
                'id': 't1',
                'name': 'Track 1',
                'popularity': 70,
                'artists': [{'id': 'a1', 'name': 'Artist a1'}],
            },
        ],
    }
    with patch('spotify_client.spotipy.Spotify', return_value=sp) as spotify_cls:
        sp.spotify_cls = spotify_cls
        yield sp


@pytest.fixture
def app(mock_oauth):
    return create_app(TestingConfig, oauth=mock_oauth)


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def repository(app):
    return app.extensions['genre_tracker']['repository']


@pytest.fixture
def spotify_client(app):
    return app.extensions['genre_tracker']['client']


@pytest.fixture
def authenticated_client(spotify_client, mock_spotify):
    spotify_client.authenticate({'access_token': 'test-access-token'})
    return spotify_client

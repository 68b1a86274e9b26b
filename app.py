import logging
from collections import Counter

from flask import Blueprint, Flask, current_app, jsonify, redirect, render_template, request, url_for

from config import Config
from errors import AuthError, GenreTrackerError
from models import db, init_db
from repository import Repository
from spotify_client import SpotifyClient, build_oauth, exchange_code, split_snapshot

logger = logging.getLogger(__name__)

bp = Blueprint('tracker', __name__)


def create_app(config_object=Config, client=None, repository=None, oauth=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    db.init_app(app)

    if repository is None:
        engine = init_db(app)
        repository = Repository(engine, app.config['SNAPSHOT_TIMEZONE'])
    if client is None:
        client = SpotifyClient.from_config(repository, app.config)
    if oauth is None:
        oauth = build_oauth(app.config)

    app.extensions['genre_tracker'] = {
        'client': client,
        'repository': repository,
        'oauth': oauth,
    }
    app.register_blueprint(bp)
    return app


def _tracker(name):
    return current_app.extensions['genre_tracker'][name]


def rank_genres(artists):
    """Genre counts across ``artists``, most frequent first; ties keep first-seen order."""
    counts = Counter()
    for artist in artists:
        counts.update(artist.genres)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{'name': name, 'count': count} for name, count in ranked]


@bp.route('/')
def index():
    return render_template('index.html')


@bp.route('/login')
def login():
    url = _tracker('oauth').get_authorize_url()
    return redirect(url, code=307)


@bp.route('/callback')
def callback():
    code = request.args.get('code')
    if not code:
        return 'Code not provided', 400

    try:
        token = exchange_code(_tracker('oauth'), code)
    except AuthError as e:
        logger.error(f"Token exchange failed: {e}")
        return f'Failed to exchange token: {e}', 500

    try:
        _tracker('client').authenticate(token)
    except GenreTrackerError as e:
        logger.error(f"Client initialization failed: {e}")
        return f'Failed to initialize Spotify client: {e}', 500

    return redirect(url_for('tracker.top_artists'))


@bp.route('/top-artists')
def top_artists():
    client = _tracker('client')
    try:
        artists = client.fetch_top_artists()
        records, genres_by_artist = split_snapshot(artists)
        _tracker('repository').insert_snapshot(client.user_id, records, genres_by_artist)
    except AuthError as e:
        return str(e), 401
    except GenreTrackerError as e:
        logger.error(f"Error handling top artists request: {e}")
        return str(e), 500

    return jsonify(
        artists=[record.to_dict() for record in records],
        genres=rank_genres(artists),
    )


@bp.route('/top-tracks')
def top_tracks():
    try:
        tracks = _tracker('client').fetch_top_tracks()
    except AuthError as e:
        return str(e), 401
    except GenreTrackerError as e:
        logger.error(f"Error handling top tracks request: {e}")
        return str(e), 500

    return jsonify(tracks=[track.to_dict() for track in tracks])


@bp.route('/analyze')
def analyze():
    days = current_app.config.get('ANALYZE_WINDOW_DAYS', 7)
    try:
        counts = _tracker('repository').recent_genre_counts(days)
    except GenreTrackerError as e:
        logger.error(f"Failed to analyze data: {e}")
        return str(e), 500

    logger.info(f"Genres listened to in the last {days} days:")
    for genre, count in counts:
        logger.info(f"{genre}: {count}")
    return 'Analysis complete. Check server logs for details.'


@bp.route('/fetch-data')
def fetch_recorded_data():
    repository = _tracker('repository')
    try:
        artists = repository.fetch_all_artists()
        genres = repository.fetch_genre_counts()
    except GenreTrackerError as e:
        return f'Failed to fetch recorded data: {e}', 500

    return jsonify(
        artists=[artist.to_dict() for artist in artists],
        genres=genres,
    )

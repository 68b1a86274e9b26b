import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    # Spotify API credentials
    SPOTIPY_CLIENT_ID = os.getenv('SPOTIPY_CLIENT_ID')
    SPOTIPY_CLIENT_SECRET = os.getenv('SPOTIPY_CLIENT_SECRET')
    SPOTIPY_REDIRECT_URI = os.getenv('SPOTIPY_REDIRECT_URI', 'http://localhost:8080/callback')
    SPOTIFY_SCOPES = os.getenv('SPOTIFY_SCOPES', 'user-top-read user-read-private')

    TOP_ARTISTS_LIMIT = int(os.getenv('TOP_ARTISTS_LIMIT', '20'))
    TOP_ARTISTS_TIME_RANGE = os.getenv('TOP_ARTISTS_TIME_RANGE', 'medium_term')

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///spotify_data.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev')

    # Ranking timestamps are recorded in this civil time zone
    SNAPSHOT_TIMEZONE = os.getenv('SNAPSHOT_TIMEZONE', 'Europe/Istanbul')

    # Background collection, in seconds
    FETCH_INTERVAL = int(os.getenv('FETCH_INTERVAL', '3600'))
    AUTH_POLL_INTERVAL = int(os.getenv('AUTH_POLL_INTERVAL', '60'))

    ANALYZE_WINDOW_DAYS = int(os.getenv('ANALYZE_WINDOW_DAYS', '7'))

    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', '8080'))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class TestingConfig(Config):
    TESTING = True
    SPOTIPY_CLIENT_ID = 'test-client-id'
    SPOTIPY_CLIENT_SECRET = 'test-client-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'

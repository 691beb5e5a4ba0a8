"""
Configuration Module for the Song Quiz API
Handles logging setup and Flask app initialization
"""

import os
import logging

# Genre -> Spotify playlist id
DEFAULT_PLAYLISTS = {
    'thai': '4QwQ8Z2XT9ysONAOxIgwLz',
    'pop': '1SuDkmlDf7U0qrMdcjU0xN',
    'rock': '1SuDkmlDf7U0qrMdcjU0xN',
    'hiphop': '1SuDkmlDf7U0qrMdcjU0xN',
    'kpop': '1SuDkmlDf7U0qrMdcjU0xN',
}


def configure_logging(level=logging.INFO):
    """
    Configure application logging with standard format

    Returns:
        Logger instance for the config module
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger(__name__)


def _int_env(name, default):
    value = os.environ.get(name)
    if value is None or value.strip() == '':
        return default
    return int(value)


def load_settings():
    """
    Read settings from the environment (after .env has been loaded)

    Returns:
        Dict of Flask config keys
    """
    port = _int_env('PORT', 5001)
    return {
        'APP_ENV': os.environ.get('APP_ENV', 'development'),
        'PORT': port,
        'FRONTEND_URL': os.environ.get('FRONTEND_URL', 'http://localhost:3000'),

        'SPOTIFY_CLIENT_ID': os.environ.get('SPOTIFY_CLIENT_ID'),
        'SPOTIFY_CLIENT_SECRET': os.environ.get('SPOTIFY_CLIENT_SECRET'),
        'SPOTIFY_REDIRECT_URI': os.environ.get(
            'SPOTIFY_REDIRECT_URI', f'http://localhost:{port}/api/spotify/callback'),
        'SPOTIFY_MARKET': os.environ.get('SPOTIFY_MARKET', 'TH'),
        'SPOTIFY_PLAYLISTS': dict(DEFAULT_PLAYLISTS),
        'DEFAULT_GENRE': os.environ.get('DEFAULT_GENRE', 'thai'),
        'PLAYLIST_TRACK_LIMIT': _int_env('PLAYLIST_TRACK_LIMIT', 30),
        'SEARCH_LIMIT': _int_env('SEARCH_LIMIT', 20),
        'SONG_CACHE_TTL': _int_env('SONG_CACHE_TTL', 3600),

        'SCORE_STORE': os.environ.get('SCORE_STORE', 'memory'),

        'GAME_ROUNDS': _int_env('GAME_ROUNDS', 10),
        'GAME_ROUND_SECONDS': _int_env('GAME_ROUND_SECONDS', 10),
        'MAX_GAME_SESSIONS': _int_env('MAX_GAME_SESSIONS', 500),
    }


def init_app_config(app, overrides=None):
    """
    Initialize Flask app configuration

    This sets up:
    - Settings from the environment, then any overrides
    - Custom JSON provider for datetime formatting

    Args:
        app: Flask application instance
        overrides: Optional dict of config values (used by tests)
    """
    from utils.json_provider import CustomJSONProvider

    app.config.update(load_settings())
    if overrides:
        app.config.update(overrides)
    app.config['IS_PRODUCTION'] = app.config['APP_ENV'] == 'production'
    app.json = CustomJSONProvider(app)

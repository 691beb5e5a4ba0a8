"""
Song Quiz API Backend
A Flask API that proxies Spotify for song lists, keeps the high score
board, and hosts game sessions
"""

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
import logging
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from config import configure_logging, init_app_config
from cache_utils import TTLCache
from game_session import Countdown, run_in_background
from score_store import FallbackScoreStore, LocalScoreStore, create_score_store
from session_registry import GameSessionRegistry
from spotify_client import SpotifyApiError, SpotifyClient, SpotifyRateLimitError

logger = configure_logging()

API_ENDPOINTS = [
    '/api/songs - songs for the game',
    '/api/songs/genre/:genre - songs by genre',
    '/api/songs/search - search songs',
    '/api/scores - save a score',
    '/api/scores/top - top scores',
    '/api/games - host a game session',
    '/api/spotify/login - log in with Spotify',
    '/api/spotify/me - Spotify profile',
    '/api/spotify/logout - log out',
]


def register_error_handlers(app):
    """JSON error responses for unknown routes and upstream Spotify failures"""

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not Found'}), 404

    @app.errorhandler(SpotifyRateLimitError)
    def spotify_rate_limited(error):
        logger.error(f"Error: {error}")
        return jsonify({'error': 'Rate limit exceeded, please try again later'}), 429

    @app.errorhandler(SpotifyApiError)
    def spotify_failed(error):
        logger.error(f"Error: {error}")
        if error.status_code == 401:
            return jsonify({'error': 'Spotify API authentication failed'}), 500
        if error.status_code == 429:
            return jsonify({'error': 'Rate limit exceeded, please try again later'}), 429
        return _generic_error(app, error)

    @app.errorhandler(Exception)
    def unhandled(error):
        if isinstance(error, HTTPException):
            return jsonify({'error': error.name}), error.code
        logger.error(f"Error: {error}", exc_info=True)
        return _generic_error(app, error)


def _generic_error(app, error):
    body = {'error': 'Something went wrong'}
    if app.config['APP_ENV'] == 'development':
        body['message'] = str(error)
    return jsonify(body), 500


def create_app(overrides=None):
    """
    Build the Flask app

    Args:
        overrides: Optional config values applied after the environment
    """
    app = Flask(__name__)
    init_app_config(app, overrides)

    CORS(
        app,
        origins=[app.config['FRONTEND_URL']],
        supports_credentials=True,
        methods=['GET', 'POST', 'DELETE', 'OPTIONS'],
        allow_headers=['Content-Type', 'Authorization'],
    )

    app.extensions['spotify_client'] = SpotifyClient(
        client_id=app.config['SPOTIFY_CLIENT_ID'],
        client_secret=app.config['SPOTIFY_CLIENT_SECRET'],
        redirect_uri=app.config['SPOTIFY_REDIRECT_URI'],
        market=app.config['SPOTIFY_MARKET'],
    )
    app.extensions['song_cache'] = TTLCache(default_ttl=app.config['SONG_CACHE_TTL'])

    score_store = create_score_store(app.config['SCORE_STORE'])
    app.extensions['score_store'] = score_store
    # Scores from hosted games fall back to a local file if the server store fails
    app.extensions['game_score_store'] = FallbackScoreStore(score_store, LocalScoreStore())
    app.extensions['game_sessions'] = GameSessionRegistry(app.config['MAX_GAME_SESSIONS'])
    app.extensions['game_options'] = {
        'countdown_factory': Countdown,
        'dispatcher': run_in_background,
    }

    logger.info(f"Spotify credentials present: {app.extensions['spotify_client'].has_credentials}")
    logger.info(f"Score store: {app.config['SCORE_STORE']}")

    from routes import register_blueprints
    register_blueprints(app)
    register_error_handlers(app)

    @app.route('/')
    def index():
        return jsonify({
            'message': 'Song Quiz API',
            'version': '1.0.0',
            'endpoints': API_ENDPOINTS,
        })

    @app.before_request
    def log_request():
        """Log incoming requests"""
        logger.info(f"{request.method} {request.path}")

    @app.after_request
    def log_response(response):
        """Log response status"""
        logger.info(f"{request.method} {request.path} - {response.status_code}")
        return response

    logger.info(f"Flask app initialized in PID {os.getpid()}")
    return app


app = create_app()


if __name__ == '__main__':
    # Running directly with 'python app.py' (not gunicorn)
    logger.info("Starting Flask application directly (not gunicorn)...")
    try:
        app.run(debug=True, host='0.0.0.0', port=app.config['PORT'])
    finally:
        logger.info("Shutting down...")
        app.extensions['game_sessions'].close_all()
        if app.config['SCORE_STORE'] == 'postgres':
            import db_utils
            db_utils.close_connection_pool()
        logger.info("Shutdown complete")

# routes/health.py
from flask import Blueprint, current_app, jsonify
import logging
import time

logger = logging.getLogger(__name__)
health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """Health check with the state of the app's collaborators"""
    health_status = {
        'status': 'ok',
        'score_store': current_app.config['SCORE_STORE'],
        'spotify_configured': current_app.extensions['spotify_client'].has_credentials,
        'game_sessions': len(current_app.extensions['game_sessions']),
        'timestamp': time.time()
    }

    if current_app.config['SCORE_STORE'] == 'postgres':
        import db_utils
        health_status['pool_stats'] = db_utils.get_pool_stats()

    return jsonify(health_status), 200

"""
High Score Routes

- GET /api/scores/top - Top 10 scores, highest first
- POST /api/scores - Save a finished game's score
"""

from flask import Blueprint, current_app, jsonify, request
import logging

from models import HighScoreEntry
from score_store import TOP_SCORES_LIMIT, PersistenceError
from utils.helpers import safe_strip

logger = logging.getLogger(__name__)
scores_bp = Blueprint('scores', __name__)


def _store():
    return current_app.extensions['score_store']


@scores_bp.route('/api/scores/top', methods=['GET'])
def get_top_scores():
    try:
        entries = _store().get_top_scores(TOP_SCORES_LIMIT)
    except PersistenceError as e:
        logger.error(f"Error fetching top scores: {e}")
        return jsonify({'error': 'Failed to fetch scores'}), 500
    return jsonify([entry.to_dict() for entry in entries])


@scores_bp.route('/api/scores', methods=['POST'])
def save_score():
    """
    Save a score

    Request body:
        {
            "playerName": "Ploy",  (or "name")
            "score": 120,
            "mode": "title" (optional),
            "date": "2025-01-15T10:30:00Z" (optional)
        }

    Returns:
        201: {"id": "...", "name": "Ploy", "score": 120, "mode": "title", "date": "..."}
        400: Invalid input
        500: Server error
    """
    data = request.get_json(silent=True) or {}

    player_name = data.get('playerName') or data.get('name')
    player_name = safe_strip(player_name) if isinstance(player_name, str) else None
    score = data.get('score')
    if not player_name or isinstance(score, bool) or not isinstance(score, (int, float)):
        return jsonify({'error': 'Invalid input'}), 400

    try:
        entry = HighScoreEntry.from_dict({
            'name': player_name,
            'score': score,
            'mode': data.get('mode'),
            'date': data.get('date'),
        })
    except ValueError:
        return jsonify({'error': 'Invalid input'}), 400

    try:
        saved = _store().save_score(entry)
    except PersistenceError as e:
        logger.error(f"Error saving score: {e}")
        return jsonify({'error': 'Failed to save score'}), 500

    logger.info(f"Score saved: {saved.player_name} {saved.score}")
    return jsonify(saved.to_dict()), 201

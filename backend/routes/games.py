"""
Game Session Routes

Hosts quiz games on the server; the countdown runs here, the browser only
plays the preview clip and polls the session.

- POST   /api/games - Create a session (loads and shuffles songs)
- GET    /api/games/<id> - Current session view
- POST   /api/games/<id>/start - Start playing
- POST   /api/games/<id>/guess - Submit {"guess": "..."}
- POST   /api/games/<id>/skip - Skip the current song
- POST   /api/games/<id>/continue - Next song (or end of game)
- POST   /api/games/<id>/restart - Back to the start screen
- POST   /api/games/<id>/scores - Scoreboard view, returns top scores
- POST   /api/games/<id>/back - Leave the scoreboard view
- DELETE /api/games/<id> - Discard the session
"""

from functools import wraps
from flask import Blueprint, current_app, g, jsonify, request
import logging

from game_session import (
    EmptyQueueError,
    GameSession,
    InvalidTransitionError,
    PlayerNameRequiredError,
)
from middleware.spotify_auth import optional_spotify_token
from models import GameMode
from routes.songs import UnknownGenreError, load_songs
from utils.helpers import safe_strip

logger = logging.getLogger(__name__)
games_bp = Blueprint('games', __name__, url_prefix='/api/games')

MAX_ROUNDS = 50


def _registry():
    return current_app.extensions['game_sessions']


def with_session(f):
    """Look up the session named in the URL; 404 if unknown, 409/400 on game errors"""
    @wraps(f)
    def decorated_function(session_id, *args, **kwargs):
        session = _registry().get(session_id)
        if session is None:
            return jsonify({'error': 'Game not found'}), 404

        try:
            return f(session, *args, **kwargs)
        except (InvalidTransitionError, EmptyQueueError) as e:
            return jsonify({'error': str(e), 'state': session.state.value}), 409
        except PlayerNameRequiredError as e:
            return jsonify({'error': str(e)}), 400

    return decorated_function


def _text(value):
    """Stripped string from a JSON body field; anything but a non-empty string is None"""
    return safe_strip(value) if isinstance(value, str) else None


def _parse_rounds(value):
    if value is None:
        value = current_app.config['GAME_ROUNDS']
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= MAX_ROUNDS:
        raise ValueError(f"rounds must be an integer between 1 and {MAX_ROUNDS}")
    return value


@games_bp.route('', methods=['POST'])
@optional_spotify_token
def create_game():
    """
    Create a game session

    Request body (all optional):
        {
            "playerName": "Ploy",
            "mode": "title" | "artist",
            "genre": "thai",
            "playlistId": "37i9dQZF1DX...",
            "rounds": 10
        }

    Returns:
        201: Session view
        400: Invalid mode, genre or rounds
        409: No songs available
    """
    data = request.get_json(silent=True) or {}

    try:
        mode = GameMode.parse(data.get('mode'))
        rounds = _parse_rounds(data.get('rounds'))
        songs = load_songs(
            genre=_text(data.get('genre')),
            playlist_id=_text(data.get('playlistId')),
            user_token=g.spotify_token,
        )
    except UnknownGenreError:
        return jsonify({'error': 'Invalid genre'}), 400
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    if not songs:
        return jsonify({'error': 'No songs available'}), 409

    options = current_app.extensions['game_options']
    session = GameSession(
        mode=mode,
        round_count=rounds,
        round_seconds=current_app.config['GAME_ROUND_SECONDS'],
        player_name=_text(data.get('playerName')),
        score_store=current_app.extensions['game_score_store'],
        **options,
    )
    session.load_songs(songs, shuffle=True)
    _registry().add(session)

    logger.info(f"Created game session {session.id} ({mode.value}, {len(songs)} songs)")
    return jsonify(session.snapshot()), 201


@games_bp.route('/<session_id>', methods=['GET'])
@with_session
def get_game(session):
    return jsonify(session.snapshot())


@games_bp.route('/<session_id>/start', methods=['POST'])
@with_session
def start_game(session):
    data = request.get_json(silent=True) or {}
    session.start(_text(data.get('playerName')))
    return jsonify(session.snapshot())


@games_bp.route('/<session_id>/guess', methods=['POST'])
@with_session
def submit_guess(session):
    data = request.get_json(silent=True) or {}
    guess = data.get('guess')
    if not isinstance(guess, str):
        return jsonify({'error': 'guess must be a string'}), 400
    session.submit_guess(guess)
    return jsonify(session.snapshot())


@games_bp.route('/<session_id>/skip', methods=['POST'])
@with_session
def skip_song(session):
    session.skip()
    return jsonify(session.snapshot())


@games_bp.route('/<session_id>/continue', methods=['POST'])
@with_session
def continue_game(session):
    session.continue_game()
    return jsonify(session.snapshot())


@games_bp.route('/<session_id>/restart', methods=['POST'])
@with_session
def restart_game(session):
    session.restart()
    return jsonify(session.snapshot())


@games_bp.route('/<session_id>/scores', methods=['POST'])
@with_session
def show_scores(session):
    entries = session.show_scores()
    view = session.snapshot()
    view['scores'] = [entry.to_dict() for entry in entries]
    return jsonify(view)


@games_bp.route('/<session_id>/back', methods=['POST'])
@with_session
def leave_scores(session):
    session.back()
    return jsonify(session.snapshot())


@games_bp.route('/<session_id>', methods=['DELETE'])
def delete_game(session_id):
    if not _registry().remove(session_id):
        return jsonify({'error': 'Game not found'}), 404
    return jsonify({'success': True})

"""
Spotify Login Routes

This module handles the player's Spotify account:
- GET /api/spotify/login - Redirect to the Spotify consent page
- GET /api/spotify/callback - Exchange the code, set token cookies, back to frontend
- GET /api/spotify/refresh-token - Refresh the access token cookie
- GET /api/spotify/me - Spotify profile of the logged-in player
- GET /api/spotify/logout - Clear token cookies
- GET /api/spotify/playlists - Player's playlists (requires login)
- GET /api/spotify/playlist/<id>/tracks - Playable tracks of a playlist (requires login)
"""

import logging
import secrets
from urllib.parse import urlencode

import requests
from flask import Blueprint, current_app, g, jsonify, redirect, request

from middleware.spotify_auth import (
    ACCESS_TOKEN_COOKIE,
    AUTH_STATE_COOKIE,
    REFRESH_TOKEN_COOKIE,
    TOKEN_EXPIRY_COOKIE,
    require_spotify_token,
    token_expired,
)
from spotify_client import SpotifyApiError, SpotifyRateLimitError
from utils.helpers import now_ms

logger = logging.getLogger(__name__)
spotify_auth_bp = Blueprint('spotify_auth', __name__, url_prefix='/api/spotify')

AUTH_STATE_MAX_AGE = 10 * 60


def _client():
    return current_app.extensions['spotify_client']


def _frontend_redirect(fragment):
    return redirect(f"{current_app.config['FRONTEND_URL']}/#{urlencode(fragment)}")


def _set_token_cookies(response, tokens):
    """Store the access token, its expiry and (if sent) a new refresh token"""
    secure = current_app.config['IS_PRODUCTION']
    expires_in = int(tokens.get('expires_in', 3600))

    response.set_cookie(ACCESS_TOKEN_COOKIE, tokens['access_token'],
                        httponly=True, secure=secure, max_age=expires_in)
    response.set_cookie(TOKEN_EXPIRY_COOKIE, str(now_ms() + expires_in * 1000),
                        httponly=True, secure=secure, max_age=expires_in)
    if tokens.get('refresh_token'):
        response.set_cookie(REFRESH_TOKEN_COOKIE, tokens['refresh_token'],
                            httponly=True, secure=secure)
    return response


# =============================================================================
# LOGIN FLOW
# =============================================================================

@spotify_auth_bp.route('/login', methods=['GET'])
def login():
    """Start the authorization-code flow with a random CSRF state"""
    state = secrets.token_hex(16)
    response = redirect(_client().build_authorize_url(state))
    response.set_cookie(AUTH_STATE_COOKIE, state, httponly=True,
                        secure=current_app.config['IS_PRODUCTION'],
                        max_age=AUTH_STATE_MAX_AGE)
    return response


@spotify_auth_bp.route('/callback', methods=['GET'])
def callback():
    """
    Handle the redirect back from Spotify

    Redirects to the frontend with #auth=success, #error=state_mismatch
    or #error=invalid_token.
    """
    code = request.args.get('code')
    state = request.args.get('state')
    stored_state = request.cookies.get(AUTH_STATE_COOKIE)

    if state is None or state != stored_state:
        logger.warning("Spotify callback with mismatched state")
        return _frontend_redirect({'error': 'state_mismatch'})

    try:
        tokens = _client().exchange_code(code)
    except (SpotifyApiError, SpotifyRateLimitError, requests.exceptions.RequestException) as e:
        logger.error(f"Error getting access token: {e}")
        response = _frontend_redirect({'error': 'invalid_token'})
        response.delete_cookie(AUTH_STATE_COOKIE)
        return response

    response = _frontend_redirect({'auth': 'success'})
    response.delete_cookie(AUTH_STATE_COOKIE)
    logger.info("Spotify login successful")
    return _set_token_cookies(response, tokens)


@spotify_auth_bp.route('/refresh-token', methods=['GET'])
def refresh_token():
    """
    Refresh the access token cookie

    Returns:
        200: {"success": true, "expires_in": 3600}
        401: No refresh token, or Spotify refused it
    """
    token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not token:
        return jsonify({'error': 'No refresh token available'}), 401

    try:
        tokens = _client().refresh_user_token(token)
    except (SpotifyApiError, SpotifyRateLimitError, requests.exceptions.RequestException) as e:
        logger.error(f"Error refreshing token: {e}")
        return jsonify({'error': 'Failed to refresh token'}), 401

    response = jsonify({'success': True, 'expires_in': tokens.get('expires_in')})
    return _set_token_cookies(response, tokens)


@spotify_auth_bp.route('/me', methods=['GET'])
def get_me():
    """Spotify profile of the logged-in player"""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        return jsonify({'error': 'Not authenticated'}), 401

    if token_expired(request.cookies.get(TOKEN_EXPIRY_COOKIE)):
        return jsonify({'error': 'Token expired', 'refreshNeeded': True}), 401

    try:
        return jsonify(_client().get_me(token))
    except SpotifyApiError as e:
        if e.status_code == 401:
            return jsonify({'error': 'Invalid token', 'refreshNeeded': True}), 401
        logger.error(f"Error getting user profile: {e}")
        return jsonify({'error': 'Failed to get user profile'}), 500
    except requests.exceptions.RequestException as e:
        logger.error(f"Error getting user profile: {e}")
        return jsonify({'error': 'Failed to get user profile'}), 500


@spotify_auth_bp.route('/logout', methods=['GET'])
def logout():
    response = jsonify({'success': True, 'message': 'Logged out successfully'})
    for cookie in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, TOKEN_EXPIRY_COOKIE):
        response.delete_cookie(cookie)
    return response


# =============================================================================
# PLAYER PLAYLISTS
# =============================================================================

@spotify_auth_bp.route('/playlists', methods=['GET'])
@require_spotify_token
def get_playlists():
    """Player's own playlists (raw Spotify playlist objects)"""
    return jsonify(_client().get_user_playlists(g.spotify_token))


@spotify_auth_bp.route('/playlist/<playlist_id>/tracks', methods=['GET'])
@require_spotify_token
def get_playlist_tracks(playlist_id):
    """Playable tracks of one of the player's playlists"""
    songs = _client().get_playlist_tracks(
        playlist_id,
        user_token=g.spotify_token,
        limit=current_app.config['PLAYLIST_TRACK_LIMIT'],
    )
    return jsonify([song.to_dict() for song in songs])

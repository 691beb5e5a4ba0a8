"""
Spotify session middleware for Flask routes

The player's Spotify tokens live in httpOnly cookies set by the OAuth
callback. This module provides:
- require_spotify_token: reject the request unless a live token is present
- optional_spotify_token: load the token if present and live, else carry on
"""

from functools import wraps
from flask import request, jsonify, g

from utils.helpers import now_ms

ACCESS_TOKEN_COOKIE = 'spotify_access_token'
REFRESH_TOKEN_COOKIE = 'spotify_refresh_token'
TOKEN_EXPIRY_COOKIE = 'spotify_token_expiry'
AUTH_STATE_COOKIE = 'spotify_auth_state'


def token_expired(expiry_cookie):
    """True if the expiry cookie (epoch ms) is in the past; unreadable counts as expired"""
    if not expiry_cookie:
        return False
    try:
        return int(expiry_cookie) < now_ms()
    except ValueError:
        return True


def get_user_token():
    """
    Get the player's Spotify access token from the request cookies

    Returns:
        Token string, or None if missing or expired
    """
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token or token_expired(request.cookies.get(TOKEN_EXPIRY_COOKIE)):
        return None
    return token


def require_spotify_token(f):
    """
    Decorator to require a live Spotify access token

    Usage:
        @bp.route('/api/spotify/me')
        @require_spotify_token
        def me():
            token = g.spotify_token

    Responds 401 {'error': 'Not authenticated'} without a token and
    401 {'error': 'Token expired', 'refreshNeeded': True} when it has expired.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = request.cookies.get(ACCESS_TOKEN_COOKIE)
        if not token:
            return jsonify({'error': 'Not authenticated', 'refreshNeeded': False}), 401

        if token_expired(request.cookies.get(TOKEN_EXPIRY_COOKIE)):
            return jsonify({'error': 'Token expired', 'refreshNeeded': True}), 401

        g.spotify_token = token
        return f(*args, **kwargs)

    return decorated_function


def optional_spotify_token(f):
    """
    Decorator that loads the Spotify token if present, but doesn't require it

    g.spotify_token is the live token or None.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.spotify_token = get_user_token()
        return f(*args, **kwargs)

    return decorated_function

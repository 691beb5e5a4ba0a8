# routes/songs.py
"""
Song API Routes

Provides the song lists the game is played with:
- GET /api/songs - Default playlist
- GET /api/fallback-songs - Built-in song list
- GET /api/songs/genre/<genre> - Playlist for a genre
- GET /api/songs/search?q= - Spotify track search

Every endpoint answers with a list of songs. When Spotify is unreachable
or returns nothing playable, the built-in list is returned instead.
"""
from flask import Blueprint, current_app, g, jsonify, request
import logging

from middleware.spotify_auth import optional_spotify_token
from song_provider import (
    FallbackSongSource,
    SongProvider,
    SpotifyPlaylistSource,
    SpotifySearchSource,
)
from utils.helpers import safe_strip

logger = logging.getLogger(__name__)
songs_bp = Blueprint('songs', __name__)

MIN_SEARCH_LENGTH = 2


class UnknownGenreError(ValueError):
    """Raised for a genre with no configured playlist"""


def build_song_provider(*sources):
    """Provider over the given sources, the fallback list and the app's song cache"""
    return SongProvider(
        list(sources) + [FallbackSongSource()],
        cache=current_app.extensions['song_cache'],
        ttl=current_app.config['SONG_CACHE_TTL'],
    )


def load_songs(genre=None, playlist_id=None, user_token=None):
    """
    Load songs for a genre, a specific playlist, or the default playlist

    Raises:
        UnknownGenreError: If the genre has no configured playlist
    """
    playlists = current_app.config['SPOTIFY_PLAYLISTS']
    client = current_app.extensions['spotify_client']
    limit = current_app.config['PLAYLIST_TRACK_LIMIT']

    if playlist_id:
        cache_key = None
    elif genre:
        if genre not in playlists:
            raise UnknownGenreError(genre)
        playlist_id = playlists[genre]
        cache_key = f'songs_{genre}'
    else:
        playlist_id = playlists.get(current_app.config['DEFAULT_GENRE'])
        cache_key = 'songs'

    sources = []
    if playlist_id:
        sources.append(SpotifyPlaylistSource(client, playlist_id, user_token=user_token, limit=limit))
    return build_song_provider(*sources).get_songs(cache_key)


def _song_list(songs):
    return jsonify([song.to_dict() for song in songs])


@songs_bp.route('/api/songs', methods=['GET'])
@optional_spotify_token
def get_songs():
    """Songs for the game from the default playlist"""
    return _song_list(load_songs(user_token=g.spotify_token))


@songs_bp.route('/api/fallback-songs', methods=['GET'])
def get_fallback_songs():
    """The built-in song list"""
    return _song_list(FallbackSongSource().fetch())


@songs_bp.route('/api/songs/genre/<genre>', methods=['GET'])
@optional_spotify_token
def get_songs_by_genre(genre):
    """
    Songs from the playlist configured for a genre

    Returns:
        200: List of songs
        400: {"error": "Invalid genre"}
    """
    try:
        songs = load_songs(genre=genre, user_token=g.spotify_token)
    except UnknownGenreError:
        return jsonify({'error': 'Invalid genre'}), 400
    return _song_list(songs)


@songs_bp.route('/api/songs/search', methods=['GET'])
def search_songs():
    """
    Search Spotify for playable tracks

    Query params:
        q: Search text (at least 2 characters)

    Returns:
        200: List of songs (the built-in list if nothing playable was found)
        400: {"error": "Search query too short"}
    """
    query = safe_strip(request.args.get('q'))
    if not query or len(query) < MIN_SEARCH_LENGTH:
        return jsonify({'error': 'Search query too short'}), 400

    client = current_app.extensions['spotify_client']
    source = SpotifySearchSource(client, query, limit=current_app.config['SEARCH_LIMIT'])
    return _song_list(build_song_provider(source).get_songs())

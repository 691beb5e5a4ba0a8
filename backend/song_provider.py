"""
Song Provider

Produces the list of songs a game is played with. Sources are tried in
order; the first one that returns songs wins. The last source is normally
FallbackSongSource, so callers always get a non-empty list.

Sources:
- SpotifyPlaylistSource: tracks of a Spotify playlist
- SpotifySearchSource: Spotify track search
- RemoteSongSource: the backend's own /api/songs endpoints (terminal client)
- FallbackSongSource: hardcoded list of Thai songs
"""

import logging
from typing import List, Optional, Sequence

import requests

from cache_utils import TTLCache
from models import Song
from spotify_client import SpotifyApiError, SpotifyRateLimitError

logger = logging.getLogger(__name__)

FALLBACK_SONGS = (
    Song('1', 'ขอเวลาลืม', 'Aun Feeble Heart',
         'https://p.scdn.co/mp3-preview/d26b3ef7fbdbc3e8e1c88d486bb67ad300e3302c',
         'https://i.scdn.co/image/ab67616d0000b273aedfea23aa334722d93c68a3'),
    Song('2', 'คิดถึง', 'Bodyslam',
         'https://p.scdn.co/mp3-preview/12e809f4386c1d1c0ee9322501d5220817ea30d5',
         'https://i.scdn.co/image/ab67616d0000b2734ae252d82e388ae5a8f2d651'),
    Song('3', 'ใจความสำคัญ', 'Scrubb',
         'https://p.scdn.co/mp3-preview/9a611215e4486d874c297fd6d101c7f0f3564215',
         'https://i.scdn.co/image/ab67616d0000b2738f3b6f061560d8481eb152e5'),
    Song('4', 'เพียงแค่ใจเรารักกัน', 'ดา เอ็นโดรฟิน',
         'https://p.scdn.co/mp3-preview/8f20fd0aadc237f712c2d547352a328bef8894e6',
         'https://i.scdn.co/image/ab67616d0000b2733e67d851bf5f06e37c581c1d'),
    Song('5', 'เรือเล็กควรออกจากฝั่ง', 'Bodyslam',
         'https://p.scdn.co/mp3-preview/8153a07ee0881d5bf2fb4a539fe4cdb1243d8dbe',
         'https://i.scdn.co/image/ab67616d0000b273bc9f74e19ea7f5f3f2189a60'),
    Song('6', 'แพ้ทาง', 'Labanoon',
         'https://p.scdn.co/mp3-preview/5a8f3899a1e4cb6539da13f65897a8af7181958d',
         'https://i.scdn.co/image/ab67616d0000b27314abe21fd8d3a0c72c9e0f09'),
    Song('7', 'อยู่ตรงนี้นานกว่าเดิม', 'Palmy',
         'https://p.scdn.co/mp3-preview/89f8dea61080414f6e25dbbd96b5799026df9539',
         'https://i.scdn.co/image/ab67616d0000b273c7e3a2d3ef8fa25f5d60ddd6'),
    Song('8', 'ไม่บอกเธอ', 'Bedroom Audio',
         'https://p.scdn.co/mp3-preview/e4c9f886dc6c7d41db58b31bdc6b6bd8d0475ee8',
         'https://i.scdn.co/image/ab67616d0000b2739ec45a685a73f6caac7d9d3f'),
    Song('9', 'ทุกลมหายใจ', 'Singular',
         'https://p.scdn.co/mp3-preview/3f6d94f6bc2f7f4f59d904535a7aed81f50fe9a6',
         'https://i.scdn.co/image/ab67616d0000b2737265fdb5acf4fce76efa8f75'),
    Song('10', 'ฤดูร้อน', 'Paradox',
         'https://p.scdn.co/mp3-preview/b3c30dded7d9c9caa0962c3c3c699e396881e8d2',
         'https://i.scdn.co/image/ab67616d0000b2736ea0545bbfc86457d23ae657'),
)

# Errors a source may raise that mean "try the next one"
SOURCE_ERRORS = (SpotifyApiError, SpotifyRateLimitError, requests.exceptions.RequestException,
                 ValueError, KeyError)


class SongSource:
    """One way of getting songs. Subclasses implement fetch()."""

    name = 'source'
    cacheable = True

    def fetch(self) -> List[Song]:
        raise NotImplementedError


class SpotifyPlaylistSource(SongSource):
    name = 'spotify_playlist'

    def __init__(self, client, playlist_id: str, user_token: Optional[str] = None, limit: int = 30):
        self.client = client
        self.playlist_id = playlist_id
        self.user_token = user_token
        self.limit = limit

    def fetch(self) -> List[Song]:
        return self.client.get_playlist_tracks(self.playlist_id, user_token=self.user_token,
                                               limit=self.limit)


class SpotifySearchSource(SongSource):
    name = 'spotify_search'

    def __init__(self, client, query: str, limit: int = 20):
        self.client = client
        self.query = query
        self.limit = limit

    def fetch(self) -> List[Song]:
        return self.client.search_tracks(self.query, limit=self.limit)


class RemoteSongSource(SongSource):
    """Songs from a running quiz backend (GET /api/songs[/genre/<genre>])"""

    name = 'remote'

    def __init__(self, base_url: str, genre: Optional[str] = None, timeout: int = 10):
        self.base_url = base_url.rstrip('/')
        self.genre = genre
        self.timeout = timeout

    def fetch(self) -> List[Song]:
        path = f'/api/songs/genre/{self.genre}' if self.genre else '/api/songs'
        response = requests.get(f'{self.base_url}{path}', timeout=self.timeout)
        response.raise_for_status()
        return [Song.from_dict(item) for item in response.json()]


class FallbackSongSource(SongSource):
    name = 'fallback'
    cacheable = False

    def __init__(self, songs: Sequence[Song] = FALLBACK_SONGS):
        self.songs = list(songs)

    def fetch(self) -> List[Song]:
        return list(self.songs)


class SongProvider:
    """
    Ordered chain of song sources with a TTL cache in front.

    Only results from cacheable sources are cached, so a Spotify outage does
    not pin the fallback list for an hour.
    """

    def __init__(self, sources: Sequence[SongSource], cache: Optional[TTLCache] = None,
                 ttl: int = 3600):
        self.sources = list(sources)
        self.cache = cache
        self.ttl = ttl
        self.last_source = None

    def get_songs(self, cache_key: Optional[str] = None) -> List[Song]:
        """
        Get songs from the first source that has any

        Args:
            cache_key: Key to cache the result under (no caching if None)

        Returns:
            List of Song objects; empty only if every source came back empty
        """
        if cache_key and self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached:
                self.last_source = 'cache'
                return list(cached)

        for source in self.sources:
            try:
                songs = source.fetch()
            except SOURCE_ERRORS as e:
                logger.error(f"Song source '{source.name}' failed: {e}")
                continue

            if not songs:
                logger.warning(f"Song source '{source.name}' returned no playable songs")
                continue

            self.last_source = source.name
            logger.info(f"Loaded {len(songs)} songs from '{source.name}'")
            if cache_key and self.cache is not None and source.cacheable:
                self.cache.set(cache_key, list(songs), self.ttl)
            return list(songs)

        logger.error("No song source returned any songs")
        self.last_source = None
        return []

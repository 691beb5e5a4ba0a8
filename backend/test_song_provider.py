import pytest
import requests

from cache_utils import TTLCache
from conftest import FakeResponse
from models import Song
from song_provider import (
    FALLBACK_SONGS,
    FallbackSongSource,
    RemoteSongSource,
    SongProvider,
    SongSource,
    SpotifyPlaylistSource,
)
from spotify_client import SpotifyApiError


class StaticSource(SongSource):
    def __init__(self, name, songs=None, error=None):
        self.name = name
        self.songs = songs or []
        self.error = error
        self.calls = 0

    def fetch(self):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.songs)


SPOTIFY_SONGS = [Song('sp1', 'Track', 'Artist', 'https://p.scdn.co/mp3-preview/x')]


class TestSongProvider:
    def test_first_source_with_songs_wins(self):
        first = StaticSource('spotify_playlist', SPOTIFY_SONGS)
        second = FallbackSongSource()
        provider = SongProvider([first, second])

        assert provider.get_songs() == SPOTIFY_SONGS
        assert provider.last_source == 'spotify_playlist'

    def test_failed_source_falls_through(self):
        provider = SongProvider([
            StaticSource('spotify_playlist', error=SpotifyApiError(500)),
            FallbackSongSource(),
        ])
        assert provider.get_songs() == list(FALLBACK_SONGS)
        assert provider.last_source == 'fallback'

    def test_empty_source_falls_through(self):
        provider = SongProvider([StaticSource('spotify_playlist', []), FallbackSongSource()])
        assert len(provider.get_songs()) == 10

    def test_all_sources_empty(self):
        provider = SongProvider([StaticSource('a'), StaticSource('b')])
        assert provider.get_songs() == []
        assert provider.last_source is None

    def test_unexpected_errors_propagate(self):
        provider = SongProvider([StaticSource('a', error=RuntimeError("bug"))])
        with pytest.raises(RuntimeError):
            provider.get_songs()

    def test_results_are_cached(self):
        source = StaticSource('spotify_playlist', SPOTIFY_SONGS)
        cache = TTLCache()
        provider = SongProvider([source, FallbackSongSource()], cache=cache)

        provider.get_songs('songs')
        assert provider.get_songs('songs') == SPOTIFY_SONGS
        assert provider.last_source == 'cache'
        assert source.calls == 1

    def test_fallback_list_is_not_cached(self):
        cache = TTLCache()
        provider = SongProvider([StaticSource('a', error=SpotifyApiError(500)),
                                 FallbackSongSource()], cache=cache)
        provider.get_songs('songs')
        assert cache.get('songs') is None

    def test_no_cache_key_means_no_caching(self):
        source = StaticSource('spotify_playlist', SPOTIFY_SONGS)
        provider = SongProvider([source], cache=TTLCache())
        provider.get_songs()
        provider.get_songs()
        assert source.calls == 2


class TestFallbackSongs:
    def test_ten_playable_songs(self):
        songs = FallbackSongSource().fetch()
        assert len(songs) == 10
        assert len({s.id for s in songs}) == 10
        assert all(s.title and s.artist and s.preview_url for s in songs)

    def test_fetch_returns_copy(self):
        source = FallbackSongSource()
        source.fetch().clear()
        assert len(source.fetch()) == 10


class TestSpotifyPlaylistSource:
    def test_passes_playlist_and_token(self):
        calls = []

        class Client:
            def get_playlist_tracks(self, playlist_id, user_token=None, limit=30):
                calls.append((playlist_id, user_token, limit))
                return SPOTIFY_SONGS

        source = SpotifyPlaylistSource(Client(), 'pl1', user_token='tok', limit=5)
        assert source.fetch() == SPOTIFY_SONGS
        assert calls == [('pl1', 'tok', 5)]


class TestRemoteSongSource:
    def test_default_songs(self, monkeypatch):
        urls = []

        def fake_get(url, timeout=None):
            urls.append(url)
            return FakeResponse(200, [{'id': '1', 'name': 'คิดถึง', 'artist': 'Bodyslam',
                                       'preview_url': 'u', 'image': 'i'}])

        monkeypatch.setattr(requests, 'get', fake_get)
        songs = RemoteSongSource('http://quiz.local/').fetch()

        assert urls == ['http://quiz.local/api/songs']
        assert songs == [Song('1', 'คิดถึง', 'Bodyslam', 'u', 'i')]

    def test_genre_songs(self, monkeypatch):
        urls = []
        monkeypatch.setattr(requests, 'get',
                            lambda url, timeout=None: urls.append(url) or FakeResponse(200, []))
        RemoteSongSource('http://quiz.local', genre='rock').fetch()
        assert urls == ['http://quiz.local/api/songs/genre/rock']

    def test_unreachable_backend_uses_fallback(self, monkeypatch):
        def boom(*args, **kwargs):
            raise requests.exceptions.ConnectionError("refused")

        monkeypatch.setattr(requests, 'get', boom)
        provider = SongProvider([RemoteSongSource('http://quiz.local'), FallbackSongSource()])
        assert len(provider.get_songs()) == 10
        assert provider.last_source == 'fallback'


class TestTTLCache:
    def test_expiry(self):
        now = [100.0]
        cache = TTLCache(default_ttl=10, clock=lambda: now[0])
        cache.set('k', 'v')

        now[0] = 109.0
        assert cache.get('k') == 'v'
        now[0] = 111.0
        assert cache.get('k') is None

    def test_zero_ttl_never_expires(self):
        now = [0.0]
        cache = TTLCache(clock=lambda: now[0])
        cache.set('k', 'v', ttl=0)
        now[0] = 1e9
        assert cache.get('k') == 'v'

    def test_delete_and_clear(self):
        cache = TTLCache()
        cache.set('a', 1)
        cache.set('b', 2)
        cache.delete('a')
        assert cache.get('a') is None
        cache.clear()
        assert cache.get('b') is None

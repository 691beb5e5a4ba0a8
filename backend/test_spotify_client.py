from urllib.parse import parse_qs, urlparse

import pytest
import requests

import spotify_client
from conftest import FakeResponse
from spotify_client import SpotifyApiError, SpotifyClient, SpotifyRateLimitError, track_to_song


def make_track(track_id='t1', preview='https://p.scdn.co/mp3-preview/t1'):
    return {
        'id': track_id,
        'name': 'ใจความสำคัญ',
        'artists': [{'name': 'Scrubb'}, {'name': 'Guest'}],
        'preview_url': preview,
        'album': {'images': [{'url': 'https://i.scdn.co/image/big'}, {'url': 'small'}]},
    }


@pytest.fixture
def client():
    return SpotifyClient('id', 'secret', 'http://localhost:5001/api/spotify/callback')


@pytest.fixture
def no_sleep(monkeypatch):
    waits = []
    monkeypatch.setattr(spotify_client.time, 'sleep', waits.append)
    return waits


class TestTrackToSong:
    def test_converts_track(self):
        song = track_to_song(make_track())
        assert song.id == 't1'
        assert song.title == 'ใจความสำคัญ'
        assert song.artist == 'Scrubb'
        assert song.image_url == 'https://i.scdn.co/image/big'

    def test_track_without_preview_is_skipped(self):
        assert track_to_song(make_track(preview=None)) is None
        assert track_to_song(None) is None

    def test_missing_album_images(self):
        track = make_track()
        track['album'] = {}
        assert track_to_song(track).image_url == ''


class TestClientToken:
    def test_token_is_cached(self, client, monkeypatch):
        posts = []

        def fake_post(url, **kwargs):
            posts.append((url, kwargs))
            return FakeResponse(200, {'access_token': 'abc', 'expires_in': 3600})

        monkeypatch.setattr(requests, 'post', fake_post)

        assert client.get_client_token() == 'abc'
        assert client.get_client_token() == 'abc'
        assert len(posts) == 1
        url, kwargs = posts[0]
        assert url == 'https://accounts.spotify.com/api/token'
        assert kwargs['data'] == {'grant_type': 'client_credentials'}
        assert kwargs['headers']['Authorization'].startswith('Basic ')

    def test_missing_credentials(self):
        client = SpotifyClient(None, None)
        client.client_id = None
        client.client_secret = None
        with pytest.raises(SpotifyApiError):
            client.get_client_token()

    def test_rejected_credentials(self, client, monkeypatch):
        monkeypatch.setattr(requests, 'post',
                            lambda url, **kwargs: FakeResponse(400, {'error': 'invalid_client'}))
        with pytest.raises(SpotifyApiError) as exc_info:
            client.get_client_token()
        assert exc_info.value.status_code == 400


class TestRateLimiting:
    def test_retries_after_429(self, client, monkeypatch, no_sleep):
        responses = [
            FakeResponse(429, headers={'Retry-After': '2'}),
            FakeResponse(200, {'items': []}),
        ]
        monkeypatch.setattr(requests, 'get', lambda url, **kwargs: responses.pop(0))

        assert client.get_user_playlists('user-token') == []
        assert no_sleep == [2]
        assert client.stats['rate_limit_hits'] == 1

    def test_exponential_backoff_without_header(self, client, monkeypatch, no_sleep):
        monkeypatch.setattr(requests, 'get', lambda url, **kwargs: FakeResponse(429))

        with pytest.raises(SpotifyRateLimitError):
            client.get_me('user-token')
        assert no_sleep == [1, 2, 4]


class TestApiCalls:
    def test_playlist_tracks_skip_unplayable(self, client, monkeypatch):
        seen = {}

        def fake_get(url, headers=None, params=None, timeout=None):
            seen.update(url=url, headers=headers, params=params)
            return FakeResponse(200, {'items': [
                {'track': make_track('a')},
                {'track': make_track('b', preview=None)},
                {'track': None},
            ]})

        monkeypatch.setattr(requests, 'get', fake_get)
        songs = client.get_playlist_tracks('pl1', user_token='user-token', limit=30)

        assert [s.id for s in songs] == ['a']
        assert seen['url'] == 'https://api.spotify.com/v1/playlists/pl1/tracks'
        assert seen['headers'] == {'Authorization': 'Bearer user-token'}
        assert seen['params']['limit'] == 30

    def test_search_uses_market_and_client_token(self, client, monkeypatch):
        client.access_token = 'app-token'
        client.token_expires = float('inf')
        seen = {}

        def fake_get(url, headers=None, params=None, timeout=None):
            seen.update(url=url, headers=headers, params=params)
            return FakeResponse(200, {'tracks': {'items': [make_track('a')]}})

        monkeypatch.setattr(requests, 'get', fake_get)
        songs = client.search_tracks('scrubb', limit=20)

        assert [s.artist for s in songs] == ['Scrubb']
        assert seen['headers'] == {'Authorization': 'Bearer app-token'}
        assert seen['params'] == {'q': 'scrubb', 'type': 'track', 'limit': 20, 'market': 'TH'}

    def test_error_status_raises(self, client, monkeypatch):
        monkeypatch.setattr(requests, 'get',
                            lambda url, **kwargs: FakeResponse(401, {'error': 'expired'}))
        with pytest.raises(SpotifyApiError) as exc_info:
            client.get_me('stale-token')
        assert exc_info.value.status_code == 401


class TestAuthorizationFlow:
    def test_authorize_url(self, client):
        url = urlparse(client.build_authorize_url('xyz'))
        query = parse_qs(url.query)

        assert url.netloc == 'accounts.spotify.com'
        assert url.path == '/authorize'
        assert query['state'] == ['xyz']
        assert query['response_type'] == ['code']
        assert query['show_dialog'] == ['true']
        assert query['redirect_uri'] == ['http://localhost:5001/api/spotify/callback']
        assert 'playlist-read-private' in query['scope'][0]

    def test_exchange_code(self, client, monkeypatch):
        seen = {}

        def fake_post(url, **kwargs):
            seen.update(kwargs['data'])
            return FakeResponse(200, {'access_token': 'u', 'refresh_token': 'r', 'expires_in': 3600})

        monkeypatch.setattr(requests, 'post', fake_post)
        tokens = client.exchange_code('the-code')

        assert tokens['refresh_token'] == 'r'
        assert seen['grant_type'] == 'authorization_code'
        assert seen['code'] == 'the-code'

    def test_refresh_user_token(self, client, monkeypatch):
        seen = {}

        def fake_post(url, **kwargs):
            seen.update(kwargs['data'])
            return FakeResponse(200, {'access_token': 'new', 'expires_in': 3600})

        monkeypatch.setattr(requests, 'post', fake_post)
        assert client.refresh_user_token('r')['access_token'] == 'new'
        assert seen == {'grant_type': 'refresh_token', 'refresh_token': 'r'}

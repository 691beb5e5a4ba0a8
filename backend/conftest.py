"""
Shared pytest fixtures

The app is built with create_app() against an in-memory score store, no
Spotify credentials, a scratch cache directory, and game sessions whose
countdowns only tick when a test says so.
"""

import os
import tempfile

# Must be set before app modules are imported (the app is built at import time)
os.environ['CACHE_DIR'] = tempfile.mkdtemp(prefix='song-quiz-test-')
os.environ['SCORE_STORE'] = 'memory'
os.environ['APP_ENV'] = 'testing'
for _name in ('SPOTIFY_CLIENT_ID', 'SPOTIFY_CLIENT_SECRET', 'DATABASE_URL'):
    os.environ.pop(_name, None)

import pytest

from models import Song
from score_store import MemoryScoreStore, FallbackScoreStore, LocalScoreStore


class ManualCountdown:
    """Countdown that never runs on its own; tests call fire()"""

    instances = []

    def __init__(self, on_tick, interval=1.0):
        self.on_tick = on_tick
        self.interval = interval
        self.started = False
        self.cancelled = False
        ManualCountdown.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self, times=1):
        keep_going = True
        for _ in range(times):
            keep_going = self.on_tick()
        return keep_going


def run_now(func, *args):
    """Dispatcher that saves scores synchronously"""
    func(*args)
    return None


class RecordingAudio:
    def __init__(self):
        self.played = []
        self.stops = 0

    def play(self, url):
        self.played.append(url)

    def stop(self):
        self.stops += 1


class FakeResponse:
    """Stand-in for requests.Response"""

    def __init__(self, status_code=200, json_data=None, headers=None, text=''):
        self.status_code = status_code
        self._json = json_data
        self.headers = headers or {}
        self.text = text

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def raise_for_status(self):
        import requests
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


@pytest.fixture
def songs():
    return [
        Song('1', 'ขอเวลาลืม', 'Aun Feeble Heart', 'https://p.scdn.co/mp3-preview/1', 'img1'),
        Song('2', 'คิดถึง', 'Bodyslam', 'https://p.scdn.co/mp3-preview/2', 'img2'),
        Song('3', 'ใจความสำคัญ', 'Scrubb', 'https://p.scdn.co/mp3-preview/3', 'img3'),
    ]


@pytest.fixture
def audio():
    return RecordingAudio()


@pytest.fixture
def countdowns():
    ManualCountdown.instances = []
    return ManualCountdown.instances


@pytest.fixture
def make_session(songs, audio, countdowns):
    """Factory for a GameSession with manual countdown and synchronous saves"""
    from game_session import GameSession

    def _make(song_list=None, **kwargs):
        kwargs.setdefault('score_store', MemoryScoreStore())
        kwargs.setdefault('audio', audio)
        kwargs.setdefault('countdown_factory', ManualCountdown)
        kwargs.setdefault('dispatcher', run_now)
        return GameSession(songs if song_list is None else song_list, **kwargs)

    return _make


@pytest.fixture
def app(tmp_path):
    from app import create_app

    flask_app = create_app({
        'APP_ENV': 'testing',
        'SCORE_STORE': 'memory',
        'SPOTIFY_CLIENT_ID': None,
        'SPOTIFY_CLIENT_SECRET': None,
        'FRONTEND_URL': 'http://localhost:3000',
        'GAME_ROUND_SECONDS': 10,
    })
    score_store = MemoryScoreStore()
    flask_app.extensions['score_store'] = score_store
    flask_app.extensions['game_score_store'] = FallbackScoreStore(
        score_store, LocalScoreStore(tmp_path / 'high_scores.json'))
    flask_app.extensions['game_options'] = {
        'countdown_factory': ManualCountdown,
        'dispatcher': run_now,
    }
    flask_app.config['TESTING'] = True
    yield flask_app
    flask_app.extensions['game_sessions'].close_all()


@pytest.fixture
def client(app):
    return app.test_client()

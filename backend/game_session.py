"""
Game Session Controller

Drives one play-through of the quiz:

    start --start()--> playing --guess/skip/timeout--> feedback
    feedback --continue_game()--> playing (next song) | end (last round)
    end --restart()--> start
    start|end --show_scores()--> scores --back()--> previous state

Each round plays a preview clip and runs a countdown. The round ends on
exactly one of: a submitted guess, a skip, or the countdown reaching zero.
Correct guesses earn max(1, seconds left) * 10 points.

When the game reaches `end` the final score is handed to the score store
on a background thread; the state machine never waits for it.

All stimuli (user calls and countdown ticks) are serialized by a
per-session lock, and every countdown is bound to the round that started
it, so a late tick can never end a later round.
"""

import functools
import logging
import random
import threading
import uuid
from enum import Enum
from typing import List, Optional, Sequence

from answer_matcher import is_match
from models import GameMode, HighScoreEntry, RoundOutcome, RoundResult, Song
from score_store import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_ROUND_COUNT = 10
DEFAULT_ROUND_SECONDS = 10
POINTS_PER_SECOND = 10


class GameState(Enum):
    START = "start"
    PLAYING = "playing"
    FEEDBACK = "feedback"
    END = "end"
    SCORES = "scores"


class GameError(Exception):
    """Base class for errors surfaced to the player"""


class EmptyQueueError(GameError):
    """Raised when a game is started with no songs loaded"""
    def __init__(self):
        super().__init__("No songs available")


class PlayerNameRequiredError(GameError):
    """Raised when a game is started without a player name"""
    def __init__(self):
        super().__init__("Player name is required")


class InvalidTransitionError(GameError):
    """Raised when an action is not allowed in the current state"""
    def __init__(self, action: str, state: GameState):
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while game is in state '{state.value}'")


class Countdown:
    """
    Repeating ticker for one round, on a daemon timer thread.

    on_tick is called once per interval and returns True to keep ticking.
    cancel() stops it for good; a cancelled countdown never ticks again.
    """

    def __init__(self, on_tick, interval: float = 1.0):
        self._on_tick = on_tick
        self.interval = interval
        self._timer: Optional[threading.Timer] = None
        self._cancelled = threading.Event()

    def start(self):
        if self._cancelled.is_set() or self._timer is not None:
            return
        self._schedule()

    def _schedule(self):
        self._timer = threading.Timer(self.interval, self._fire)
        self._timer.daemon = True
        self._timer.name = "RoundCountdown"
        self._timer.start()

    def _fire(self):
        if self._cancelled.is_set():
            return
        if self._on_tick() and not self._cancelled.is_set():
            self._schedule()

    def cancel(self):
        self._cancelled.set()
        if self._timer is not None:
            self._timer.cancel()

    @property
    def active(self) -> bool:
        return self._timer is not None and not self._cancelled.is_set()


class LoggingAudioPlayer:
    """Audio player for headless hosts: logs what would be played"""

    def play(self, url: str) -> None:
        logger.info(f"Playing preview: {url}")

    def stop(self) -> None:
        logger.debug("Preview stopped")


def run_in_background(func, *args):
    """Default persistence dispatcher: run func on a daemon thread"""
    thread = threading.Thread(target=func, args=args, daemon=True, name="ScoreSaver")
    thread.start()
    return thread


class GameSession:
    """
    State machine for a single player's game.

    Collaborators are injected so the web app, the terminal client and the
    tests can each supply their own:
        score_store: save_score()/get_top_scores() (None disables saving)
        audio: play(url)/stop()
        countdown_factory: callable(on_tick, interval) -> object with start()/cancel()
        dispatcher: callable(func, *args) that runs the score save
    """

    def __init__(self, songs: Sequence[Song] = (), mode=GameMode.TITLE,
                 round_count: int = DEFAULT_ROUND_COUNT,
                 round_seconds: int = DEFAULT_ROUND_SECONDS,
                 player_name: Optional[str] = None,
                 score_store=None, audio=None,
                 countdown_factory=Countdown, tick_interval: float = 1.0,
                 dispatcher=run_in_background, session_id: Optional[str] = None):
        if round_count < 1:
            raise ValueError(f"round_count must be at least 1, got {round_count}")
        if round_seconds < 1:
            raise ValueError(f"round_seconds must be at least 1, got {round_seconds}")

        self.id = session_id or uuid.uuid4().hex
        self.mode = GameMode.parse(mode)
        self.round_count = round_count
        self.round_seconds = round_seconds
        self.player_name = (player_name or '').strip() or None

        self.score_store = score_store
        self.audio = audio or LoggingAudioPlayer()
        self._countdown_factory = countdown_factory
        self.tick_interval = tick_interval
        self._dispatch = dispatcher

        self._lock = threading.RLock()
        self._countdown = None
        self._round_serial = 0
        self._game_serial = 0
        self._save_thread = None

        self.song_queue: List[Song] = list(songs)
        self._reset()

    # ========================================================================
    # STATE
    # ========================================================================

    def _reset(self):
        self.state = GameState.START
        self.current_index = 0
        self.score = 0
        self.time_remaining = self.round_seconds
        self.total_rounds = 0
        self.results: List[RoundResult] = []
        self.final_entry: Optional[HighScoreEntry] = None
        self.save_status: Optional[str] = None
        self._previous_state: Optional[GameState] = None

    def _require(self, action: str, *states: GameState):
        if self.state not in states:
            raise InvalidTransitionError(action, self.state)

    @property
    def current_song(self) -> Optional[Song]:
        if self.state in (GameState.PLAYING, GameState.FEEDBACK):
            return self.song_queue[self.current_index]
        return None

    @property
    def countdown_active(self) -> bool:
        return self._countdown is not None

    def load_songs(self, songs: Sequence[Song], shuffle: bool = True) -> None:
        """Replace the song queue (only before a game starts)"""
        with self._lock:
            self._require('load songs', GameState.START)
            queue = list(songs)
            if shuffle:
                random.shuffle(queue)
            self.song_queue = queue
            logger.info(f"Session {self.id}: loaded {len(queue)} songs")

    # ========================================================================
    # ROUND LIFECYCLE
    # ========================================================================

    def start(self, player_name: Optional[str] = None) -> None:
        """
        Start a new game

        Raises:
            InvalidTransitionError: If not in the start state
            PlayerNameRequiredError: If no player name is known
            EmptyQueueError: If no songs are loaded
        """
        with self._lock:
            self._require('start', GameState.START)

            name = (player_name or self.player_name or '').strip()
            if not name:
                raise PlayerNameRequiredError()
            if not self.song_queue:
                raise EmptyQueueError()

            self.player_name = name
            self.score = 0
            self.current_index = 0
            self.results = []
            self.total_rounds = min(self.round_count, len(self.song_queue))
            self._game_serial += 1

            logger.info(f"Session {self.id}: {name} started a {self.mode.value} game "
                        f"with {self.total_rounds} rounds")
            self._begin_round()

    def _begin_round(self):
        self.state = GameState.PLAYING
        self.time_remaining = self.round_seconds
        self._round_serial += 1

        song = self.song_queue[self.current_index]
        try:
            self.audio.play(song.preview_url)
        except Exception as e:
            logger.warning(f"Session {self.id}: could not play preview for {song.id}: {e}")

        on_tick = functools.partial(self._handle_tick, self._round_serial)
        self._countdown = self._countdown_factory(on_tick, self.tick_interval)
        self._countdown.start()

    def _stop_round(self):
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None
        try:
            self.audio.stop()
        except Exception as e:
            logger.warning(f"Session {self.id}: could not stop preview: {e}")

    def tick(self) -> bool:
        """
        Advance the current round's countdown by one unit

        Returns:
            True while the round is still running
        """
        return self._handle_tick(self._round_serial)

    def _handle_tick(self, round_serial: int) -> bool:
        with self._lock:
            if round_serial != self._round_serial or self.state != GameState.PLAYING:
                return False

            self.time_remaining -= 1
            if self.time_remaining > 0:
                return True

            self.time_remaining = 0
            logger.info(f"Session {self.id}: round {self.current_index + 1} timed out")
            self._stop_round()
            self._record(None, False, 0, RoundOutcome.TIMEOUT)
            return False

    def submit_guess(self, guess: str) -> RoundResult:
        """
        Check the player's guess against the current song

        Raises:
            InvalidTransitionError: If no round is being played
        """
        with self._lock:
            self._require('submit a guess', GameState.PLAYING)
            self._stop_round()

            song = self.song_queue[self.current_index]
            target = song.artist if self.mode == GameMode.ARTIST else song.title
            correct = is_match(guess, target)
            points = max(1, self.time_remaining) * POINTS_PER_SECOND if correct else 0
            return self._record(guess, correct, points, RoundOutcome.GUESS)

    def skip(self) -> RoundResult:
        """
        Give up on the current song

        Raises:
            InvalidTransitionError: If no round is being played
        """
        with self._lock:
            self._require('skip', GameState.PLAYING)
            self._stop_round()
            return self._record(None, False, 0, RoundOutcome.SKIP)

    def _record(self, guess, correct, points, outcome) -> RoundResult:
        result = RoundResult(
            song=self.song_queue[self.current_index],
            guess_text=guess,
            correct=correct,
            points_awarded=points,
            outcome=outcome,
        )
        self.results.append(result)
        self.score += points
        self.state = GameState.FEEDBACK
        logger.info(f"Session {self.id}: round {self.current_index + 1} {outcome.value}, "
                    f"correct={correct}, +{points} (total {self.score})")
        return result

    def continue_game(self) -> GameState:
        """
        Move on from the feedback screen to the next song or the end

        Returns:
            The new state (playing or end)
        """
        with self._lock:
            self._require('continue', GameState.FEEDBACK)

            if self.current_index + 1 >= self.total_rounds:
                self._finish()
            else:
                self.current_index += 1
                self._begin_round()
            return self.state

    # ========================================================================
    # END OF GAME
    # ========================================================================

    def _finish(self):
        self.state = GameState.END
        entry = HighScoreEntry(self.player_name, self.score, self.mode)
        self.final_entry = entry
        logger.info(f"Session {self.id}: game over, {self.player_name} scored {self.score}")

        if self.score_store is None:
            self.save_status = 'skipped'
            return

        self.save_status = 'pending'
        self._save_thread = self._dispatch(self._persist_score, entry, self._game_serial)

    def _persist_score(self, entry: HighScoreEntry, game_serial: int):
        try:
            saved = self.score_store.save_score(entry)
        except PersistenceError as e:
            logger.error(f"Session {self.id}: could not save score: {e}")
            status, saved = 'failed', entry
        else:
            status = 'saved'

        with self._lock:
            # A restart while the save was in flight owns the session now
            if game_serial == self._game_serial and self.final_entry is entry:
                self.final_entry = saved
                self.save_status = status

    def wait_for_save(self, timeout: Optional[float] = None) -> Optional[str]:
        """Block until the background score save finishes; returns save_status"""
        thread = self._save_thread
        if thread is not None and hasattr(thread, 'join'):
            thread.join(timeout)
        return self.save_status

    def restart(self) -> None:
        """Go back to the start screen with the same songs"""
        with self._lock:
            self._require('restart', GameState.END)
            self._stop_round()
            self._game_serial += 1
            self._reset()
            logger.info(f"Session {self.id}: restarted")

    # ========================================================================
    # SCOREBOARD VIEW
    # ========================================================================

    def show_scores(self) -> List[HighScoreEntry]:
        """Switch to the scoreboard view and return the top scores"""
        with self._lock:
            self._require('show scores', GameState.START, GameState.END)
            self._previous_state = self.state
            self.state = GameState.SCORES

        if self.score_store is None:
            return []
        try:
            return self.score_store.get_top_scores()
        except PersistenceError as e:
            logger.error(f"Session {self.id}: could not load scores: {e}")
            return []

    def back(self) -> GameState:
        """Leave the scoreboard view"""
        with self._lock:
            self._require('go back', GameState.SCORES)
            self.state = self._previous_state or GameState.START
            self._previous_state = None
            return self.state

    def close(self) -> None:
        """Stop the countdown and audio; the session should not be used afterwards"""
        with self._lock:
            self._stop_round()

    # ========================================================================
    # VIEW
    # ========================================================================

    def snapshot(self) -> dict:
        """JSON-ready view of the session; the answer stays hidden while playing"""
        with self._lock:
            song = self.current_song
            data = {
                'id': self.id,
                'state': self.state.value,
                'mode': self.mode.value,
                'player_name': self.player_name,
                'round': self.current_index + 1 if song else None,
                'total_rounds': self.total_rounds or min(self.round_count, len(self.song_queue)),
                'score': self.score,
                'time_remaining': self.time_remaining,
                'song': song.to_dict(reveal=self.state != GameState.PLAYING) if song else None,
                'last_result': self.results[-1].to_dict() if self.results and self.state == GameState.FEEDBACK else None,
                'results': [r.to_dict() for r in self.results],
                'save_status': self.save_status,
            }
            if self.final_entry is not None:
                data['final_entry'] = self.final_entry.to_dict()
            return data

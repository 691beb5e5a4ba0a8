"""
High Score Stores

Every store exposes the same two calls:
- save_score(entry) -> HighScoreEntry (with the id the store assigned)
- get_top_scores(limit=10) -> entries, highest score first

Failures raise PersistenceError. FallbackScoreStore layers a primary
store over a local one, so a finished game's score is never lost just
because the server is unreachable.
"""

import json
import logging
import threading
import time
import uuid
from pathlib import Path
from typing import List, Optional

import requests

from cache_utils import get_cache_dir
from models import HighScoreEntry, rank_scores

logger = logging.getLogger(__name__)

TOP_SCORES_LIMIT = 10


class PersistenceError(Exception):
    """Raised when a score could not be saved or read"""


class MemoryScoreStore:
    """In-process scoreboard; keeps the top entries only"""

    def __init__(self, max_entries: int = TOP_SCORES_LIMIT):
        self.max_entries = max_entries
        self._entries: List[HighScoreEntry] = []
        self._lock = threading.Lock()

    def save_score(self, entry: HighScoreEntry) -> HighScoreEntry:
        if entry.id is None:
            entry = HighScoreEntry(entry.player_name, entry.score, entry.mode,
                                   entry.timestamp, id=str(uuid.uuid4()))
        with self._lock:
            self._entries.append(entry)
            self._entries = rank_scores(self._entries, self.max_entries)
        return entry

    def get_top_scores(self, limit: int = TOP_SCORES_LIMIT) -> List[HighScoreEntry]:
        with self._lock:
            return rank_scores(self._entries, limit)


class PostgresScoreStore:
    """
    Scoreboard in the high_scores table (all rows kept, top N queried).

    The table is created on first use if it does not exist yet.
    """

    CREATE_TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS high_scores (
            id UUID PRIMARY KEY,
            player_name TEXT NOT NULL,
            score INTEGER NOT NULL,
            mode TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """

    def __init__(self, connection_factory=None):
        if connection_factory is None:
            from db_utils import get_db_connection
            connection_factory = get_db_connection
        self._connect = connection_factory
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    def ensure_schema(self) -> None:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(self.CREATE_TABLE_SQL)
                conn.commit()
        except Exception as e:
            raise PersistenceError(f"Could not create high_scores table: {e}") from e
        self._schema_ready = True

    def _require_schema(self):
        if self._schema_ready:
            return
        with self._schema_lock:
            if not self._schema_ready:
                self.ensure_schema()

    def save_score(self, entry: HighScoreEntry) -> HighScoreEntry:
        entry_id = entry.id or str(uuid.uuid4())
        self._require_schema()
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute("""
                        INSERT INTO high_scores (id, player_name, score, mode, created_at)
                        VALUES (%s, %s, %s, %s, %s)
                    """, (entry_id, entry.player_name, entry.score, entry.mode.value,
                          entry.timestamp))
                conn.commit()
        except Exception as e:
            logger.error(f"Error saving score for {entry.player_name}: {e}", exc_info=True)
            raise PersistenceError(f"Could not save score: {e}") from e

        logger.info(f"Saved score {entry.score} for {entry.player_name}")
        return HighScoreEntry(entry.player_name, entry.score, entry.mode, entry.timestamp,
                              id=entry_id)

    def get_top_scores(self, limit: int = TOP_SCORES_LIMIT) -> List[HighScoreEntry]:
        self._require_schema()
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute("""
                        SELECT id, player_name, score, mode, created_at
                        FROM high_scores
                        ORDER BY score DESC, created_at ASC
                        LIMIT %s
                    """, (limit,))
                    rows = cur.fetchall()
        except Exception as e:
            logger.error(f"Error fetching top scores: {e}", exc_info=True)
            raise PersistenceError(f"Could not read scores: {e}") from e

        return [
            HighScoreEntry.from_dict({
                'id': row['id'],
                'name': row['player_name'],
                'score': row['score'],
                'mode': row['mode'],
                'date': row['created_at'],
            })
            for row in rows
        ]


class LocalScoreStore:
    """
    Scoreboard in a JSON file under the cache directory.

    Used as the offline fallback; keeps the top entries only.
    """

    def __init__(self, path: Optional[Path] = None, max_entries: int = TOP_SCORES_LIMIT):
        self.path = Path(path) if path else get_cache_dir('scores') / 'high_scores.json'
        self.max_entries = max_entries
        self._lock = threading.Lock()

    def _load(self) -> List[HighScoreEntry]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable score file {self.path}: {e}")
            return []
        except IOError as e:
            raise PersistenceError(f"Could not read {self.path}: {e}") from e

        if not isinstance(data, list):
            logger.warning(f"Ignoring score file {self.path}: expected a list")
            return []

        # One bad entry must not cost the others
        entries = []
        for item in data:
            try:
                entries.append(HighScoreEntry.from_dict(item))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping bad entry in {self.path}: {item!r} ({e})")
        return entries

    def save_score(self, entry: HighScoreEntry) -> HighScoreEntry:
        entry = HighScoreEntry(entry.player_name, entry.score, entry.mode, entry.timestamp,
                               id=f"local_{int(time.time() * 1000)}")
        with self._lock:
            entries = rank_scores(self._load() + [entry], self.max_entries)
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, 'w', encoding='utf-8') as f:
                    json.dump([e.to_dict() for e in entries], f, indent=2, ensure_ascii=False)
            except (IOError, TypeError) as e:
                raise PersistenceError(f"Could not write {self.path}: {e}") from e
        logger.info(f"Saved score {entry.score} for {entry.player_name} locally ({self.path.name})")
        return entry

    def get_top_scores(self, limit: int = TOP_SCORES_LIMIT) -> List[HighScoreEntry]:
        with self._lock:
            return rank_scores(self._load(), limit)


class RemoteScoreStore:
    """Scoreboard of a running quiz backend (/api/scores)"""

    def __init__(self, base_url: str, timeout: int = 10):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def save_score(self, entry: HighScoreEntry) -> HighScoreEntry:
        payload = {
            'playerName': entry.player_name,
            'score': entry.score,
            'mode': entry.mode.value,
            'date': entry.timestamp.isoformat(),
        }
        try:
            response = requests.post(f'{self.base_url}/api/scores', json=payload,
                                     timeout=self.timeout)
            response.raise_for_status()
            return HighScoreEntry.from_dict(response.json())
        except (requests.exceptions.RequestException, ValueError) as e:
            raise PersistenceError(f"Could not save score to {self.base_url}: {e}") from e

    def get_top_scores(self, limit: int = TOP_SCORES_LIMIT) -> List[HighScoreEntry]:
        try:
            response = requests.get(f'{self.base_url}/api/scores/top', timeout=self.timeout)
            response.raise_for_status()
            entries = [HighScoreEntry.from_dict(item) for item in response.json()]
        except (requests.exceptions.RequestException, ValueError) as e:
            raise PersistenceError(f"Could not read scores from {self.base_url}: {e}") from e
        return rank_scores(entries, limit)


class FallbackScoreStore:
    """Primary store with a local store behind it"""

    def __init__(self, primary, fallback):
        self.primary = primary
        self.fallback = fallback

    def save_score(self, entry: HighScoreEntry) -> HighScoreEntry:
        try:
            return self.primary.save_score(entry)
        except PersistenceError as e:
            logger.warning(f"Primary score store failed, saving locally instead: {e}")
            return self.fallback.save_score(entry)

    def get_top_scores(self, limit: int = TOP_SCORES_LIMIT) -> List[HighScoreEntry]:
        try:
            return self.primary.get_top_scores(limit)
        except PersistenceError as e:
            logger.warning(f"Primary score store unavailable, reading local scores: {e}")
            return self.fallback.get_top_scores(limit)


def create_score_store(kind: str = 'memory'):
    """
    Build the server-side store named by SCORE_STORE

    Raises:
        ValueError: For an unknown store kind
    """
    kind = (kind or 'memory').lower()
    if kind == 'memory':
        return MemoryScoreStore()
    if kind == 'postgres':
        return PostgresScoreStore()
    if kind == 'local':
        return LocalScoreStore()
    raise ValueError(f"Unknown score store: {kind}")

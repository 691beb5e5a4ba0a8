"""
Game Data Model

Plain value objects shared by the song provider, the score stores and the
game session controller:
- Song: one playable track with its preview clip
- RoundResult: outcome of a single round
- HighScoreEntry: a finished game as stored on the scoreboard
- GameMode: which field of the song the player has to guess

Wire format follows the keys the web frontend already consumes
(name / preview_url / image for songs, name / score / date for scores).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class GameMode(Enum):
    """What the player is guessing."""
    TITLE = "title"
    ARTIST = "artist"

    @classmethod
    def parse(cls, value) -> "GameMode":
        """
        Parse a mode coming from a request body or the command line.

        Accepts the enum itself, 'title', 'artist', and the legacy
        frontend value 'normal' (title guessing). Empty means TITLE.

        Raises:
            ValueError: If the value is not a known mode
        """
        if isinstance(value, cls):
            return value
        if value is None or str(value).strip() == "":
            return cls.TITLE
        text = str(value).strip().lower()
        if text == "normal":
            return cls.TITLE
        return cls(text)


class RoundOutcome(Enum):
    """How a round ended."""
    GUESS = "guess"
    SKIP = "skip"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Song:
    id: str
    title: str
    artist: str
    preview_url: str = ""
    image_url: str = ""

    def to_dict(self, reveal: bool = True) -> dict:
        data = {
            'id': self.id,
            'preview_url': self.preview_url,
            'image': self.image_url,
        }
        if reveal:
            data['name'] = self.title
            data['artist'] = self.artist
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Song":
        return cls(
            id=str(data.get('id') or ''),
            title=data.get('name') or data.get('title') or '',
            artist=data.get('artist') or '',
            preview_url=data.get('preview_url') or data.get('previewUrl') or '',
            image_url=data.get('image') or data.get('image_url') or data.get('imageUrl') or '',
        )


@dataclass(frozen=True)
class RoundResult:
    song: Song
    guess_text: Optional[str]
    correct: bool
    points_awarded: int
    outcome: RoundOutcome = RoundOutcome.GUESS

    def to_dict(self) -> dict:
        return {
            'song': self.song.to_dict(),
            'guess': self.guess_text,
            'correct': self.correct,
            'points': self.points_awarded,
            'outcome': self.outcome.value,
        }


@dataclass(frozen=True)
class HighScoreEntry:
    player_name: str
    score: int
    mode: GameMode = GameMode.TITLE
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.player_name,
            'score': self.score,
            'mode': self.mode.value,
            'date': self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HighScoreEntry":
        """
        Build an entry from a stored or posted JSON object

        Accepts both 'name' and 'playerName' for the player, and an ISO
        'date' (a trailing 'Z' is allowed). Missing dates become now.

        Raises:
            ValueError: If the score or mode is not valid
        """
        raw_date = data.get('date') or data.get('timestamp')
        if isinstance(raw_date, datetime):
            timestamp = raw_date
        elif raw_date:
            timestamp = datetime.fromisoformat(str(raw_date).replace('Z', '+00:00'))
        else:
            timestamp = datetime.now(timezone.utc)

        score = data.get('score')
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise ValueError(f"Invalid score: {score!r}")

        entry_id = data.get('id')
        return cls(
            player_name=data.get('name') or data.get('playerName') or '',
            score=int(score),
            mode=GameMode.parse(data.get('mode')),
            timestamp=timestamp,
            id=str(entry_id) if entry_id is not None else None,
        )


def rank_scores(entries, limit: int = 10) -> list:
    """Highest score first; equal scores keep their original order."""
    return sorted(entries, key=lambda e: e.score, reverse=True)[:limit]

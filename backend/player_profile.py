"""
Player Profile

Remembers the player's display name between games on this machine
(the terminal client's equivalent of the browser's saved name).
"""

import json
import logging
from pathlib import Path
from typing import Optional

from cache_utils import get_cache_dir

logger = logging.getLogger(__name__)


class PlayerProfile:
    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else get_cache_dir('profile') / 'player.json'

    def load_name(self) -> Optional[str]:
        """Saved player name, or None"""
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                name = json.load(f).get('name')
        except (json.JSONDecodeError, IOError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable profile {self.path}: {e}")
            return None
        return name.strip() if isinstance(name, str) and name.strip() else None

    def save_name(self, name: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({'name': name.strip()}, f, ensure_ascii=False)
        logger.info(f"Saved player name to {self.path}")

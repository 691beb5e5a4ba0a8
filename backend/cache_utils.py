#!/usr/bin/env python3
"""
Cache Utilities
Provides the persistent cache directory and a small in-process TTL cache
"""

import os
import time
import threading
from pathlib import Path
from typing import Any, Optional


def get_cache_root():
    """
    Get the absolute path to the cache root directory.

    CACHE_DIR overrides the location. Otherwise the cache directory is
    located at the project root level: <project_root>/cache/

    Returns:
        Path: Absolute path to cache root directory
    """
    override = os.environ.get('CACHE_DIR')
    if override:
        cache_root = Path(override)
    else:
        # This file is in backend/
        backend_dir = Path(__file__).parent
        cache_root = backend_dir.parent / 'cache'

    cache_root.mkdir(parents=True, exist_ok=True)
    return cache_root


def get_cache_dir(service_name):
    """
    Get the cache directory for a specific service (e.g., 'scores', 'profile').

    Args:
        service_name: Name of the service

    Returns:
        Path: Absolute path to the service's cache directory
    """
    cache_dir = get_cache_root() / service_name
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


class TTLCache:
    """
    Thread-safe in-memory key/value cache with per-entry expiry.

    One instance per owner (the app holds the song cache); there is no
    module-level cache.
    """

    def __init__(self, default_ttl: int = 3600, clock=time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._items = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired"""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and expires_at < self._clock():
                del self._items[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Store a value

        Args:
            key: Cache key
            value: Value to store
            ttl: Seconds to keep the value; 0 or less keeps it until deleted
        """
        ttl = self.default_ttl if ttl is None else ttl
        expires_at = self._clock() + ttl if ttl > 0 else None
        with self._lock:
            self._items[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

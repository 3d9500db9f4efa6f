"""Fast local mirror of the user profile, optionally backed by a JSON file.

The file holds a key/value mapping, so several keys can share one file the
way browser local storage does.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..profile import UserProfile, dump_profile

logger = logging.getLogger(__name__)

DEFAULT_CACHE_KEY = "periodpal-user-profile"


class ProfileCache:
    """Process-local profile mirror used for immediate reads at startup."""

    def __init__(self, path: Optional[Path] = None, key: str = DEFAULT_CACHE_KEY) -> None:
        if not key.strip():
            raise ValueError("Cache key cannot be empty.")
        self._path = path
        self._key = key
        self._lock = threading.RLock()
        self._profile: Optional[UserProfile] = None
        self._loaded = False

    @property
    def key(self) -> str:
        return self._key

    def get(self, default: Optional[UserProfile] = None) -> Optional[UserProfile]:
        """Return a copy of the cached profile, falling back to ``default``."""
        with self._lock:
            self._ensure_loaded()
            if self._profile is None:
                return default.model_copy(deep=True) if default is not None else None
            return self._profile.model_copy(deep=True)

    def set(self, profile: UserProfile) -> None:
        with self._lock:
            self._profile = profile.model_copy(deep=True)
            self._loaded = True
            self._write_unlocked(dump_profile(profile))

    def clear(self) -> None:
        with self._lock:
            self._profile = None
            self._loaded = True
            self._write_unlocked(None)

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if self._path is None:
            return
        payload = self._read_storage().get(self._key)
        if payload is None:
            return
        try:
            profile = UserProfile.model_validate(payload)
        except ValidationError:
            logger.warning("Ignoring unreadable cached profile under key %s", self._key)
            return
        self._profile = profile

    def _read_storage(self) -> Dict[str, Any]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read cache file %s: %s", self._path, exc)
            return {}
        return raw if isinstance(raw, dict) else {}

    def _write_unlocked(self, payload: Optional[Dict[str, Any]]) -> None:
        if self._path is None:
            return
        storage = self._read_storage()
        if payload is None:
            storage.pop(self._key, None)
        else:
            storage[self._key] = payload
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("w", encoding="utf-8") as handle:
                json.dump(storage, handle, indent=2)
        except OSError as exc:
            # The in-process copy stays authoritative when the mirror file is unwritable.
            logger.warning("Failed to write cache file %s: %s", self._path, exc)


__all__ = ["DEFAULT_CACHE_KEY", "ProfileCache"]

"""Durable profile stores behind the three-method ``ProfileStore`` contract.

``initialize`` and ``write_profile`` report failure through their boolean
result and log the cause. ``read_profile`` propagates errors so callers can
tell an empty store from an unreachable one.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings, get_settings
from .db.base import Base
from .db.session import build_engine, build_session_factory, get_engine, get_session_factory, session_scope
from .profile import UserProfile, dump_profile
from .repositories.profiles import DEFAULT_PROFILE_KEY, profiles as profile_repository

logger = logging.getLogger(__name__)


@runtime_checkable
class ProfileStore(Protocol):
    """Durable storage for the single user profile record."""

    def initialize(self) -> bool:  # pragma: no cover - protocol definition
        ...

    def read_profile(self) -> Optional[UserProfile]:  # pragma: no cover - protocol definition
        ...

    def write_profile(self, profile: UserProfile) -> bool:  # pragma: no cover - protocol definition
        ...


class InMemoryProfileStore:
    """Volatile store, used when persistence is disabled and in tests."""

    def __init__(self, profile: Optional[UserProfile] = None) -> None:
        self._profile = profile.model_copy(deep=True) if profile else None
        self._lock = threading.RLock()

    def initialize(self) -> bool:
        return True

    def read_profile(self) -> Optional[UserProfile]:
        with self._lock:
            return self._profile.model_copy(deep=True) if self._profile else None

    def write_profile(self, profile: UserProfile) -> bool:
        with self._lock:
            self._profile = profile.model_copy(deep=True)
        return True


class JsonFileProfileStore:
    """JSON-file store used for offline mode and as the hybrid fallback."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def initialize(self) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Profile directory %s is not writable: %s", self._path.parent, exc)
            return False
        return True

    def read_profile(self) -> Optional[UserProfile]:
        with self._lock:
            if not self._path.exists():
                return None
            with self._path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        return UserProfile.model_validate(raw)

    def write_profile(self, profile: UserProfile) -> bool:
        payload = dump_profile(profile)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with tmp_path.open("w", encoding="utf-8") as handle:
                    json.dump(payload, handle, indent=2)
                tmp_path.replace(self._path)
            except OSError:
                logger.exception("Failed to write profile to %s", self._path)
                return False
        return True


class DatabaseProfileStore:
    """SQLAlchemy-backed store holding one profile row keyed by ``profile_key``."""

    def __init__(
        self,
        engine: Optional[Engine] = None,
        *,
        profile_key: str = DEFAULT_PROFILE_KEY,
    ) -> None:
        self._engine = engine
        self._session_factory: Optional[sessionmaker[Session]] = (
            build_session_factory(engine) if engine is not None else None
        )
        self._profile_key = profile_key

    def _factory(self) -> sessionmaker[Session]:
        return self._session_factory or get_session_factory()

    def initialize(self) -> bool:
        try:
            engine = self._engine or get_engine()
            Base.metadata.create_all(engine)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Profile database initialisation failed: %s", exc)
            return False
        return True

    def read_profile(self) -> Optional[UserProfile]:
        with session_scope(commit=False, factory=self._factory()) as session:
            return profile_repository.get(session, self._profile_key)

    def write_profile(self, profile: UserProfile) -> bool:
        try:
            with session_scope(factory=self._factory()) as session:
                profile_repository.upsert(session, profile, self._profile_key)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to persist profile to the database")
            return False
        return True

    def delete_profile(self) -> bool:
        with session_scope(factory=self._factory()) as session:
            return profile_repository.delete(session, self._profile_key)


class HybridProfileStore:
    """Database store that falls back to a JSON file while the database is unavailable.

    Writes that land in the fallback file mark the profile for resync; the
    next call that reaches the database copies the file contents back.
    """

    def __init__(self, database: DatabaseProfileStore, fallback: JsonFileProfileStore) -> None:
        self._db_store = database
        self._file_store = fallback
        self._pending_resync = False
        self._lock = threading.RLock()

    @property
    def pending_resync(self) -> bool:
        return self._pending_resync

    def initialize(self) -> bool:
        file_ready = self._file_store.initialize()
        if self._db_store.initialize():
            return True
        logger.warning("Database unavailable during initialisation; using %s", self._file_store.path)
        self._pending_resync = True
        return file_ready

    def read_profile(self) -> Optional[UserProfile]:
        with self._lock:
            self._try_resync()
            if self._pending_resync:
                return self._file_store.read_profile()
            try:
                return self._db_store.read_profile()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Database read failed; falling back to file store: %s", exc)
                self._pending_resync = True
                return self._file_store.read_profile()

    def write_profile(self, profile: UserProfile) -> bool:
        with self._lock:
            self._try_resync()
            if not self._pending_resync and self._db_store.write_profile(profile):
                return True
            self._pending_resync = True
            return self._file_store.write_profile(profile)

    def _try_resync(self) -> None:
        if not self._pending_resync:
            return
        if not self._db_store.initialize():
            return
        try:
            fallback_profile = self._file_store.read_profile()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to read fallback profile during resync: %s", exc)
            return
        if fallback_profile is not None and not self._db_store.write_profile(fallback_profile):
            return
        self._pending_resync = False
        logger.info("Resynchronised profile from %s into the database", self._file_store.path)


def build_profile_store(settings: Optional[Settings] = None) -> ProfileStore:
    """Create the store selected by ``PERIODPAL_PERSISTENCE_MODE``."""
    settings = settings or get_settings()
    mode = settings.persistence_mode
    if mode == "memory":
        return InMemoryProfileStore()
    if mode == "file":
        return JsonFileProfileStore(settings.store_path)
    database = DatabaseProfileStore(build_engine(settings.database_url, echo=settings.database_echo))
    if mode == "hybrid":
        return HybridProfileStore(database, JsonFileProfileStore(settings.store_path))
    return database


__all__ = [
    "DatabaseProfileStore",
    "HybridProfileStore",
    "InMemoryProfileStore",
    "JsonFileProfileStore",
    "ProfileStore",
    "build_profile_store",
]

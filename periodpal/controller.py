"""Profile controller: the single owner of the in-memory user profile.

The controller is constructed once at startup and handed to every consumer.
Mutations are computed into a complete replacement profile, committed in
memory, mirrored to the local cache and then queued for the durable store on
a single persistence worker. Durable writes are best effort; their failure
never rolls back the in-memory profile.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Union

from .cache import ProfileCache
from .config import Settings, get_settings
from .prediction import CycleStatistics, cycle_statistics, period_dates, predicted_period_starts, recompute
from .profile import (
    CycleData,
    CycleDraft,
    Mood,
    PatchInput,
    Symptom,
    UserProfile,
    append_to_current_cycle,
    apply_patch,
)
from .reminders import Notifier, ReminderNotifier
from .samples import default_profile, generate_mock_profile
from .stores import ProfileStore, build_profile_store
from .telemetry import emit_event

logger = logging.getLogger(__name__)

ProfileListener = Callable[[UserProfile], None]


class ControllerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    HYDRATING = "hydrating"
    READY = "ready"


@dataclass(frozen=True)
class ImportResult:
    """Outcome of ``import_data``; truthy on success."""

    ok: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


class ProfileController:
    """Owns the canonical profile and keeps the cache and durable store in sync.

    All mutations are serialised through one re-entrant lock, so concurrent
    callers never merge into a stale profile.
    """

    def __init__(
        self,
        store: ProfileStore,
        cache: ProfileCache,
        *,
        notifier: Optional[Notifier] = None,
        settings: Optional[Settings] = None,
        today: Optional[Callable[[], date]] = None,
        initial_profile: Optional[UserProfile] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store
        self._cache = cache
        self._today = today or date.today
        self._reminder = ReminderNotifier(notifier, lead_days=self._settings.reminder_lead_days)
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="periodpal-persist")
        self._pending_writes: List[Future] = []
        self._listeners: List[ProfileListener] = []
        self._state = ControllerState.UNINITIALIZED
        self._store_available = False
        self._last_cycle_id = 0
        self._closed = False

        fallback = initial_profile or self._starter_profile()
        # Served immediately so callers can render before hydration finishes.
        self._profile: UserProfile = cache.get(fallback) or fallback
        self._reminder.evaluate(self._profile.next_period_prediction, self._today())

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def profile(self) -> UserProfile:
        with self._lock:
            return self._profile.model_copy(deep=True)

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is not ControllerState.READY

    @property
    def store_available(self) -> bool:
        return self._store_available

    def get_current_period_dates(self) -> List[date]:
        """Days of the latest period, ``average_period_length`` days from its start."""
        with self._lock:
            return period_dates(self._profile.last_period_start, self._profile.average_period_length)

    def cycle_statistics(self) -> CycleStatistics:
        with self._lock:
            return cycle_statistics(
                self._profile.cycle_history,
                rolling_window=self._settings.rolling_average_cycles,
            )

    def upcoming_period_starts(self, count: int = 3) -> List[date]:
        with self._lock:
            return predicted_period_starts(self._profile, count)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def hydrate(self) -> ControllerState:
        """Load the durable profile, or seed the store from the current one.

        Runs once per controller; later calls return the current state. Store
        I/O happens outside the lock, so reads and mutations keep working on
        the cached profile while it runs.
        """
        with self._lock:
            if self._state is not ControllerState.UNINITIALIZED:
                return self._state
            self._state = ControllerState.HYDRATING

        stored: Optional[UserProfile] = None
        try:
            initialized = self._store.initialize()
            if initialized:
                stored = self._store.read_profile()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Profile store unavailable, continuing with cached profile: %s", exc)
            initialized = False

        with self._lock:
            if not initialized:
                source = "cache"
            elif stored is not None:
                source = "store"
                self._commit(stored)
            else:
                source = "seeded"
            self._store_available = initialized
            self._state = ControllerState.READY
            if source == "seeded":
                # Queued before any later mutation can queue its own write.
                self._schedule_write(self._profile.model_copy(deep=True))
            cycles = len(self._profile.cycle_history)

        emit_event("profile_hydrated", source=source, cycles=cycles)
        logger.info("Profile hydration complete (source=%s)", source)
        return ControllerState.READY

    def start(self) -> "Future[ControllerState]":
        """Hydrate on the persistence worker; the cached profile stays readable meanwhile."""
        return self._executor.submit(self.hydrate)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def subscribe(self, listener: ProfileListener) -> Callable[[], None]:
        """Call ``listener`` with every committed profile; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def update_profile(self, patch: PatchInput) -> UserProfile:
        with self._lock:
            self._ensure_open()
            merged = apply_patch(self._profile, patch)
            self._commit(self._recompute(merged))
            return self.profile

    def add_cycle(self, cycle: Union[CycleDraft, Mapping[str, Any]]) -> CycleData:
        draft = cycle if isinstance(cycle, CycleDraft) else CycleDraft.model_validate(dict(cycle))
        with self._lock:
            self._ensure_open()
            new_cycle = CycleData(
                id=self._next_cycle_id(),
                start_date=draft.start_date,
                end_date=draft.end_date,
                moods=list(draft.moods),
                symptoms=list(draft.symptoms),
            )
            updated = self._profile.model_copy(
                update={
                    "cycle_history": [*self._profile.cycle_history, new_cycle],
                    "last_period_start": draft.start_date,
                    "last_period_end": draft.end_date,
                }
            )
            self._commit(self._recompute(updated))
        emit_event("cycle_added", cycle_id=new_cycle.id, start_date=new_cycle.start_date)
        return new_cycle.model_copy(deep=True)

    def add_mood(self, mood: Union[Mood, Mapping[str, Any]]) -> bool:
        """Append to the most recent cycle; returns False when there is none."""
        entry = mood if isinstance(mood, Mood) else Mood.model_validate(dict(mood))
        with self._lock:
            self._ensure_open()
            if self._profile.current_cycle is None:
                logger.debug("Dropping mood %s: no cycle recorded yet", entry.type)
                return False
            self._commit(append_to_current_cycle(self._profile, mood=entry))
            return True

    def add_symptom(self, symptom: Union[Symptom, Mapping[str, Any]]) -> bool:
        """Append to the most recent cycle; returns False when there is none."""
        entry = symptom if isinstance(symptom, Symptom) else Symptom.model_validate(dict(symptom))
        with self._lock:
            self._ensure_open()
            if self._profile.current_cycle is None:
                logger.debug("Dropping symptom %s: no cycle recorded yet", entry.type)
                return False
            self._commit(append_to_current_cycle(self._profile, symptom=entry))
            return True

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_data(self) -> str:
        with self._lock:
            return self._profile.model_dump_json(by_alias=True)

    def import_data(self, data: str) -> ImportResult:
        """Replace the whole profile from an exported document; never raises."""
        try:
            imported = UserProfile.model_validate_json(data)
        except (TypeError, ValueError) as exc:
            logger.error("Failed to import data: %s", exc)
            return ImportResult(ok=False, error=str(exc))

        with self._lock:
            if self._closed:
                return ImportResult(ok=False, error="Profile controller is closed.")
            self._commit(self._recompute(imported))
        emit_event("profile_imported", cycles=len(imported.cycle_history))
        return ImportResult(ok=True)

    # ------------------------------------------------------------------
    # Persistence worker
    # ------------------------------------------------------------------

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued durable writes; returns False if the timeout expired."""
        with self._lock:
            pending = list(self._pending_writes)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Flush queued writes and stop the persistence worker; later mutations raise."""
        with self._lock:
            self._closed = True
        self.flush()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "ProfileController":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Profile controller is closed.")

    def _starter_profile(self) -> UserProfile:
        if self._settings.seed_mock_profile:
            return generate_mock_profile(self._today(), self._settings)
        return default_profile(self._settings)

    def _recompute(self, profile: UserProfile) -> UserProfile:
        return recompute(
            profile,
            policy=self._settings.cycle_length_policy,
            rolling_window=self._settings.rolling_average_cycles,
        )

    def _next_cycle_id(self) -> str:
        taken = {cycle.id for cycle in self._profile.cycle_history}
        candidate = max(int(time.time() * 1000), self._last_cycle_id + 1)
        while str(candidate) in taken:
            candidate += 1
        self._last_cycle_id = candidate
        return str(candidate)

    def _commit(self, profile: UserProfile) -> None:
        previous = self._profile
        self._profile = profile
        self._cache.set(profile)
        if self._state is ControllerState.READY and self._store_available:
            self._schedule_write(profile.model_copy(deep=True))

        for listener in list(self._listeners):
            try:
                listener(profile.model_copy(deep=True))
            except Exception:  # noqa: BLE001
                logger.exception("Profile listener failed")

        if profile.next_period_prediction != previous.next_period_prediction:
            self._reminder.evaluate(profile.next_period_prediction, self._today())

    def _schedule_write(self, snapshot: UserProfile) -> None:
        if self._closed:
            logger.warning("Skipping durable profile write: controller is closed")
            return
        self._pending_writes = [future for future in self._pending_writes if not future.done()]
        self._pending_writes.append(self._executor.submit(self._write, snapshot))

    def _write(self, snapshot: UserProfile) -> bool:
        try:
            written = self._store.write_profile(snapshot)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Durable profile write raised: %s", exc)
            written = False
        if not written:
            logger.warning("Durable profile write failed; in-memory profile is unaffected")
            emit_event("profile_write_failed", cycles=len(snapshot.cycle_history))
        return written


def create_controller(
    settings: Optional[Settings] = None,
    *,
    notifier: Optional[Notifier] = None,
) -> ProfileController:
    """Build a controller wired to the configured store and cache mirror."""
    settings = settings or get_settings()
    return ProfileController(
        build_profile_store(settings),
        ProfileCache(settings.cache_path, settings.cache_key),
        notifier=notifier,
        settings=settings,
    )


__all__ = [
    "ControllerState",
    "ImportResult",
    "ProfileController",
    "ProfileListener",
    "create_controller",
]

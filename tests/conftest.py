"""Shared fixtures for profile controller and store tests."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import pytest

from periodpal.cache import ProfileCache
from periodpal.config import Settings
from periodpal.controller import ProfileController
from periodpal.profile import UserProfile
from periodpal.telemetry import TelemetryEvent, clear_listeners, register_listener

TEST_TODAY = date(2024, 3, 10)


class FakeStore:
    """Scriptable ``ProfileStore`` double."""

    def __init__(self, profile: Optional[UserProfile] = None) -> None:
        self.profile = profile.model_copy(deep=True) if profile else None
        self.initialize_result = True
        self.raise_on_read = False
        self.fail_writes = False
        self.writes: list[UserProfile] = []

    def initialize(self) -> bool:
        return self.initialize_result

    def read_profile(self) -> Optional[UserProfile]:
        if self.raise_on_read:
            raise RuntimeError("store unavailable")
        return self.profile.model_copy(deep=True) if self.profile else None

    def write_profile(self, profile: UserProfile) -> bool:
        if self.fail_writes:
            return False
        self.profile = profile.model_copy(deep=True)
        self.writes.append(self.profile)
        return True


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, int]] = []

    def notify(self, title: str, message: str, duration_ms: int) -> None:
        self.calls.append((title, message, duration_ms))


@pytest.fixture(autouse=True)
def _reset_telemetry():
    clear_listeners()
    yield
    clear_listeners()


@pytest.fixture
def telemetry_events() -> list[TelemetryEvent]:
    events: list[TelemetryEvent] = []
    register_listener(events.append)
    return events


@pytest.fixture
def settings() -> Settings:
    return Settings(
        persistence_mode="memory",
        cache_path=None,
        cycle_length_policy="history",
        reminder_lead_days=3,
        seed_mock_profile=False,
    )


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_controller(settings: Settings, notifier: RecordingNotifier):
    created: list[ProfileController] = []

    def _make(
        store: Optional[FakeStore] = None,
        *,
        cache: Optional[ProfileCache] = None,
        today: date = TEST_TODAY,
        initial_profile: Optional[UserProfile] = None,
        controller_settings: Optional[Settings] = None,
    ) -> ProfileController:
        controller = ProfileController(
            store if store is not None else FakeStore(),
            cache or ProfileCache(),
            notifier=notifier,
            settings=controller_settings or settings,
            today=lambda: today,
            initial_profile=initial_profile,
        )
        created.append(controller)
        return controller

    yield _make
    for controller in created:
        controller.close()


def logged_at(day: int, hour: int = 9) -> datetime:
    return datetime(2024, 3, day, hour, 0)


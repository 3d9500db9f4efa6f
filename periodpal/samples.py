"""Starter profiles used before anything has been persisted."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from .config import Settings, get_settings
from .prediction import recompute
from .profile import CycleData, Mood, Symptom, UserProfile


def default_profile(settings: Optional[Settings] = None) -> UserProfile:
    settings = settings or get_settings()
    return UserProfile(
        average_cycle_length=settings.default_cycle_length,
        average_period_length=settings.default_period_length,
        luteal_phase_length=settings.default_luteal_phase_length,
    )


def generate_mock_profile(as_of: date, settings: Optional[Settings] = None) -> UserProfile:
    """Build a demo profile with three recorded cycles, the last one ten days before ``as_of``."""
    settings = settings or get_settings()
    cycle_length = settings.default_cycle_length
    period_length = settings.default_period_length
    last_start = as_of - timedelta(days=10)

    history = []
    for index, offset in enumerate((2, 1, 0)):
        start = last_start - timedelta(days=cycle_length * offset)
        history.append(
            CycleData(
                id=f"mock-{index + 1}",
                start_date=start,
                end_date=start + timedelta(days=period_length - 1),
            )
        )

    logged_at = datetime.combine(last_start + timedelta(days=1), time(9, 0))
    history[-1] = history[-1].model_copy(
        update={
            "moods": [Mood(type="calm", intensity=3, timestamp=logged_at)],
            "symptoms": [Symptom(type="cramps", intensity=2, timestamp=logged_at)],
        }
    )

    profile = UserProfile(
        name="Demo",
        average_cycle_length=cycle_length,
        average_period_length=period_length,
        luteal_phase_length=settings.default_luteal_phase_length,
        last_period_start=history[-1].start_date,
        last_period_end=history[-1].end_date,
        cycle_history=history,
    )
    return recompute(
        profile,
        policy=settings.cycle_length_policy,
        rolling_window=settings.rolling_average_cycles,
    )


__all__ = ["default_profile", "generate_mock_profile"]

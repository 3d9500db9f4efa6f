"""Cycle prediction engine.

Derives the next period start, the ovulation estimate and the fertile window
from the profile's last period start and cycle-length statistics.

Two cycle-length policies are supported:

``history``
    When the history holds at least two cycles with distinct start dates, the
    average cycle length is the rounded mean of the intervals between
    consecutive start dates (last ``rolling_window`` intervals). Otherwise the
    configured value is kept.
``static``
    The configured ``average_cycle_length`` is always used.

Every function here is pure: inputs are never mutated and the same input
always yields the same output.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, List, Literal, Optional

from .profile import CycleData, UserProfile

CycleLengthPolicy = Literal["static", "history"]

DEFAULT_LUTEAL_PHASE_DAYS = 14
DEFAULT_PERIOD_DAYS = 5
FERTILE_WINDOW_DAYS = 6
ROLLING_AVERAGE_CYCLES = 6
MIN_CYCLE_DAYS = 21
MAX_CYCLE_DAYS = 45
IRREGULAR_STDEV_DAYS = 7.0


@dataclass
class CycleStatistics:
    """Interval statistics over the recorded cycle history.

    Attributes:
        intervals:     Days between consecutive cycle starts (oldest first).
        mean_length:   Mean interval, or None without at least one interval.
        std_length:    Sample standard deviation (0.0 for a single interval).
        cycles_used:   Number of intervals contributing to the statistics.
        is_irregular:  True if intervals vary by more than a week.
        warnings:      Short or long cycle flags.
    """

    intervals: List[int] = field(default_factory=list)
    mean_length: Optional[float] = None
    std_length: Optional[float] = None
    cycles_used: int = 0
    is_irregular: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def rounded_mean(self) -> Optional[int]:
        return round(self.mean_length) if self.mean_length is not None else None


def cycle_intervals(history: Iterable[CycleData]) -> List[int]:
    """Return positive day deltas between consecutive distinct start dates.

    History is stored in insertion order, so starts are sorted first.
    """
    starts = sorted({cycle.start_date for cycle in history})
    return [(later - earlier).days for earlier, later in zip(starts, starts[1:])]


def cycle_statistics(
    history: Iterable[CycleData],
    *,
    rolling_window: int = ROLLING_AVERAGE_CYCLES,
) -> CycleStatistics:
    intervals = cycle_intervals(history)[-rolling_window:]
    stats = CycleStatistics(intervals=intervals, cycles_used=len(intervals))
    if not intervals:
        return stats

    stats.mean_length = statistics.mean(intervals)
    stats.std_length = statistics.stdev(intervals) if len(intervals) > 1 else 0.0
    stats.is_irregular = stats.std_length > IRREGULAR_STDEV_DAYS

    for length in intervals:
        if length < MIN_CYCLE_DAYS:
            stats.warnings.append(
                f"Short cycle detected: {length} days (below {MIN_CYCLE_DAYS} day minimum)"
            )
        elif length > MAX_CYCLE_DAYS:
            stats.warnings.append(
                f"Long cycle detected: {length} days (above {MAX_CYCLE_DAYS} day maximum)"
            )
    return stats


def effective_cycle_length(
    profile: UserProfile,
    *,
    policy: CycleLengthPolicy = "history",
    rolling_window: int = ROLLING_AVERAGE_CYCLES,
) -> int:
    if policy == "history":
        stats = cycle_statistics(profile.cycle_history, rolling_window=rolling_window)
        if stats.rounded_mean:
            return stats.rounded_mean
    return profile.average_cycle_length


def recompute(
    profile: UserProfile,
    *,
    policy: CycleLengthPolicy = "history",
    rolling_window: int = ROLLING_AVERAGE_CYCLES,
) -> UserProfile:
    """Return a copy of the profile with every derived field recalculated."""
    cycle_length = effective_cycle_length(profile, policy=policy, rolling_window=rolling_window)
    updates: dict[str, object] = {
        "average_cycle_length": cycle_length,
        "next_period_prediction": None,
        "ovulation_prediction": None,
        "fertile_window_start": None,
        "fertile_window_end": None,
    }

    if profile.last_period_start is not None:
        next_start = profile.last_period_start + timedelta(days=cycle_length)
        luteal = profile.luteal_phase_length or DEFAULT_LUTEAL_PHASE_DAYS
        ovulation = next_start - timedelta(days=luteal)
        updates.update(
            next_period_prediction=next_start,
            ovulation_prediction=ovulation,
            fertile_window_start=ovulation - timedelta(days=FERTILE_WINDOW_DAYS - 1),
            fertile_window_end=ovulation,
        )

    return profile.model_copy(update=updates, deep=True)


def period_dates(start: Optional[date], length: Optional[int]) -> List[date]:
    """Consecutive days of a period starting at ``start``; empty without a start."""
    if start is None:
        return []
    days = length or DEFAULT_PERIOD_DAYS
    return [start + timedelta(days=offset) for offset in range(days)]


def predicted_period_starts(profile: UserProfile, count: int = 3) -> List[date]:
    """Project the next ``count`` period starts from the current prediction."""
    if profile.next_period_prediction is None or count <= 0:
        return []
    step = timedelta(days=profile.average_cycle_length)
    return [profile.next_period_prediction + step * index for index in range(count)]


__all__ = [
    "CycleLengthPolicy",
    "CycleStatistics",
    "cycle_intervals",
    "cycle_statistics",
    "effective_cycle_length",
    "period_dates",
    "predicted_period_starts",
    "recompute",
]

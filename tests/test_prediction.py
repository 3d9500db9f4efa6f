from __future__ import annotations

from datetime import date, timedelta

from periodpal.prediction import (
    cycle_intervals,
    cycle_statistics,
    period_dates,
    predicted_period_starts,
    recompute,
)
from periodpal.profile import CycleData, UserProfile


def _cycle(cycle_id: str, start: date) -> CycleData:
    return CycleData(id=cycle_id, start_date=start, end_date=start + timedelta(days=4))


def _profile_with_starts(*starts: date, cycle_length: int = 28) -> UserProfile:
    history = [_cycle(str(index), start) for index, start in enumerate(starts)]
    return UserProfile(
        average_cycle_length=cycle_length,
        last_period_start=starts[-1] if starts else None,
        cycle_history=history,
    )


def test_prediction_adds_average_cycle_length_to_last_start() -> None:
    profile = UserProfile(last_period_start=date(2024, 1, 1), average_cycle_length=28)

    result = recompute(profile)

    assert result.next_period_prediction == date(2024, 1, 29)


def test_recompute_is_idempotent_and_leaves_input_untouched() -> None:
    profile = _profile_with_starts(date(2024, 1, 1), date(2024, 1, 30), date(2024, 2, 27))
    snapshot = profile.model_copy(deep=True)

    first = recompute(profile)
    second = recompute(profile)

    assert first == second
    assert recompute(first) == first
    assert profile == snapshot
    assert first.cycle_history == profile.cycle_history


def test_missing_last_period_start_clears_predictions() -> None:
    profile = UserProfile(
        next_period_prediction=date(2024, 5, 1),
        fertile_window_start=date(2024, 4, 12),
    )

    result = recompute(profile)

    assert result.next_period_prediction is None
    assert result.ovulation_prediction is None
    assert result.fertile_window_start is None
    assert result.fertile_window_end is None


def test_history_policy_uses_mean_interval_between_starts() -> None:
    # Intervals 29 and 31 days; insertion order deliberately unsorted.
    profile = UserProfile(
        average_cycle_length=28,
        last_period_start=date(2024, 3, 1),
        cycle_history=[
            _cycle("b", date(2024, 1, 30)),
            _cycle("a", date(2024, 1, 1)),
            _cycle("c", date(2024, 3, 1)),
        ],
    )

    result = recompute(profile, policy="history")

    assert result.average_cycle_length == 30
    assert result.next_period_prediction == date(2024, 3, 31)


def test_static_policy_keeps_configured_length() -> None:
    profile = _profile_with_starts(date(2024, 1, 1), date(2024, 2, 5), cycle_length=28)

    result = recompute(profile, policy="static")

    assert result.average_cycle_length == 28
    assert result.next_period_prediction == date(2024, 3, 4)


def test_single_cycle_falls_back_to_configured_length() -> None:
    profile = _profile_with_starts(date(2024, 1, 1), cycle_length=32)

    result = recompute(profile, policy="history")

    assert result.average_cycle_length == 32
    assert result.next_period_prediction == date(2024, 2, 2)


def test_rolling_window_limits_intervals() -> None:
    starts = [date(2024, 1, 1)]
    for length in (40, 28, 28):
        starts.append(starts[-1] + timedelta(days=length))
    profile = _profile_with_starts(*starts)

    result = recompute(profile, policy="history", rolling_window=2)

    assert result.average_cycle_length == 28


def test_fertile_window_ends_on_predicted_ovulation() -> None:
    profile = UserProfile(last_period_start=date(2024, 1, 1), average_cycle_length=28)

    result = recompute(profile)

    assert result.ovulation_prediction == date(2024, 1, 15)
    assert result.fertile_window_start == date(2024, 1, 10)
    assert result.fertile_window_end == date(2024, 1, 15)


def test_custom_luteal_phase_shifts_ovulation() -> None:
    profile = UserProfile(
        last_period_start=date(2024, 1, 1),
        average_cycle_length=28,
        luteal_phase_length=12,
    )

    result = recompute(profile)

    assert result.ovulation_prediction == date(2024, 1, 17)


def test_cycle_intervals_skip_duplicate_starts() -> None:
    history = [
        _cycle("1", date(2024, 1, 1)),
        _cycle("2", date(2024, 1, 1)),
        _cycle("3", date(2024, 1, 29)),
    ]

    assert cycle_intervals(history) == [28]


def test_cycle_statistics_flags_irregular_and_short_cycles() -> None:
    profile = _profile_with_starts(
        date(2024, 1, 1),
        date(2024, 1, 19),  # 18 days
        date(2024, 3, 5),  # 46 days
    )

    stats = cycle_statistics(profile.cycle_history)

    assert stats.intervals == [18, 46]
    assert stats.cycles_used == 2
    assert stats.mean_length == 32
    assert stats.is_irregular
    assert any("Short cycle" in warning for warning in stats.warnings)
    assert any("Long cycle" in warning for warning in stats.warnings)


def test_cycle_statistics_empty_history() -> None:
    stats = cycle_statistics([])

    assert stats.mean_length is None
    assert stats.rounded_mean is None
    assert stats.cycles_used == 0
    assert not stats.is_irregular


def test_period_dates_enumerates_consecutive_days() -> None:
    assert period_dates(date(2024, 3, 1), 5) == [
        date(2024, 3, 1),
        date(2024, 3, 2),
        date(2024, 3, 3),
        date(2024, 3, 4),
        date(2024, 3, 5),
    ]
    assert period_dates(None, 5) == []


def test_predicted_period_starts_steps_by_cycle_length() -> None:
    profile = recompute(UserProfile(last_period_start=date(2024, 1, 1), average_cycle_length=28))

    assert predicted_period_starts(profile, 3) == [
        date(2024, 1, 29),
        date(2024, 2, 26),
        date(2024, 3, 25),
    ]
    assert predicted_period_starts(UserProfile(), 3) == []

from __future__ import annotations

from datetime import date

import pytest

from periodpal.reminders import (
    REMINDER_DURATION_MS,
    REMINDER_TITLE,
    ReminderNotifier,
    format_reminder_date,
    reminder_message,
)
from tests.conftest import RecordingNotifier


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (date(2024, 10, 1), "October 1st"),
        (date(2024, 10, 2), "October 2nd"),
        (date(2024, 10, 3), "October 3rd"),
        (date(2024, 10, 11), "October 11th"),
        (date(2024, 10, 12), "October 12th"),
        (date(2024, 10, 13), "October 13th"),
        (date(2024, 10, 22), "October 22nd"),
        (date(2024, 10, 31), "October 31st"),
    ],
)
def test_format_reminder_date_uses_ordinals(value: date, expected: str) -> None:
    assert format_reminder_date(value) == expected


def test_fires_three_days_before_prediction() -> None:
    notifier = RecordingNotifier()
    reminder = ReminderNotifier(notifier, lead_days=3)

    fired = reminder.evaluate(date(2024, 1, 29), today=date(2024, 1, 26))

    assert fired
    assert notifier.calls == [
        (
            REMINDER_TITLE,
            "Your next period is expected to start in 3 days, on January 29th.",
            REMINDER_DURATION_MS,
        )
    ]


def test_does_not_fire_on_other_days() -> None:
    notifier = RecordingNotifier()
    reminder = ReminderNotifier(notifier, lead_days=3)

    assert not reminder.evaluate(date(2024, 1, 29), today=date(2024, 1, 25))
    assert not reminder.evaluate(date(2024, 1, 29), today=date(2024, 1, 29))
    assert not reminder.evaluate(None, today=date(2024, 1, 26))
    assert notifier.calls == []


def test_fires_once_per_prediction_and_day() -> None:
    notifier = RecordingNotifier()
    reminder = ReminderNotifier(notifier, lead_days=3)

    assert reminder.evaluate(date(2024, 1, 29), today=date(2024, 1, 26))
    assert not reminder.evaluate(date(2024, 1, 29), today=date(2024, 1, 26))

    assert len(notifier.calls) == 1
    assert reminder.last_notified == (date(2024, 1, 29), date(2024, 1, 26))


def test_zero_lead_days_fires_on_predicted_day_once() -> None:
    notifier = RecordingNotifier()
    reminder = ReminderNotifier(notifier, lead_days=0)

    assert reminder.evaluate(date(2024, 1, 26), today=date(2024, 1, 26))
    assert reminder.evaluate(date(2024, 1, 26), today=date(2024, 1, 26)) is False
    assert len(notifier.calls) == 1


def test_failing_notifier_is_contained() -> None:
    class BrokenNotifier:
        def notify(self, title: str, message: str, duration_ms: int) -> None:
            raise RuntimeError("toast unavailable")

    reminder = ReminderNotifier(BrokenNotifier(), lead_days=3)

    assert reminder.evaluate(date(2024, 1, 29), today=date(2024, 1, 26)) is False


def test_reminder_emits_telemetry(telemetry_events) -> None:
    reminder = ReminderNotifier(RecordingNotifier(), lead_days=3)

    reminder.evaluate(date(2024, 1, 29), today=date(2024, 1, 26))

    events = [event for event in telemetry_events if event.name == "period_reminder_sent"]
    assert events[0].payload == {"prediction": "2024-01-29", "reminder_date": "2024-01-26"}


def test_singular_day_wording() -> None:
    assert reminder_message(date(2024, 1, 29), 1).startswith(
        "Your next period is expected to start in 1 day,"
    )


def test_controller_reminds_when_prediction_changes(make_controller, notifier) -> None:
    # TEST_TODAY is 2024-03-10; a period on 2024-02-12 with a 30 day cycle is due 2024-03-13.
    controller = make_controller()

    controller.update_profile({"lastPeriodStart": "2024-02-12", "averageCycleLength": 30})
    controller.update_profile({"name": "Unrelated change"})

    assert len(notifier.calls) == 1
    assert "March 13th" in notifier.calls[0][1]

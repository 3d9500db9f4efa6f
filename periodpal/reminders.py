"""Upcoming-period reminder."""

from __future__ import annotations

import logging
import threading
from datetime import date, timedelta
from typing import Optional, Protocol, Tuple

from .telemetry import emit_event

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Period Reminder"
REMINDER_DURATION_MS = 5000


class Notifier(Protocol):
    """User-visible, fire-and-forget notification sink."""

    def notify(self, title: str, message: str, duration_ms: int) -> None:  # pragma: no cover - protocol definition
        ...


class LoggingNotifier:
    """Default notifier that writes reminders to the application log."""

    def notify(self, title: str, message: str, duration_ms: int) -> None:
        logger.info("%s: %s", title, message)


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def format_reminder_date(value: date) -> str:
    """Render a date as ``October 22nd``."""
    return f"{value.strftime('%B')} {_ordinal(value.day)}"


def reminder_message(prediction: date, lead_days: int) -> str:
    unit = "day" if lead_days == 1 else "days"
    return (
        f"Your next period is expected to start in {lead_days} {unit}, "
        f"on {format_reminder_date(prediction)}."
    )


class ReminderNotifier:
    """Fires once when today is ``lead_days`` before the predicted period start.

    A ``(prediction, today)`` pair is notified at most once, so repeated
    evaluation within a day is harmless.
    """

    def __init__(self, notifier: Optional[Notifier] = None, *, lead_days: int = 3) -> None:
        self._notifier = notifier or LoggingNotifier()
        self._lead_days = lead_days
        self._last_notified: Optional[Tuple[date, date]] = None
        self._lock = threading.Lock()

    @property
    def last_notified(self) -> Optional[Tuple[date, date]]:
        return self._last_notified

    def reminder_date(self, prediction: date) -> date:
        return prediction - timedelta(days=self._lead_days)

    def evaluate(self, prediction: Optional[date], today: date) -> bool:
        """Notify if due; returns True only when a notification was sent."""
        if prediction is None or today != self.reminder_date(prediction):
            return False
        key = (prediction, today)
        with self._lock:
            if self._last_notified == key:
                return False
            self._last_notified = key

        try:
            self._notifier.notify(REMINDER_TITLE, reminder_message(prediction, self._lead_days), REMINDER_DURATION_MS)
        except Exception:  # noqa: BLE001
            logger.exception("Reminder notification failed for %s", prediction)
            return False
        emit_event("period_reminder_sent", prediction=prediction, reminder_date=today)
        return True


__all__ = [
    "LoggingNotifier",
    "Notifier",
    "ReminderNotifier",
    "format_reminder_date",
    "reminder_message",
]

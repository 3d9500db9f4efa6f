"""Database-backed user profile repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import CycleRecordModel, UserProfileModel
from ..profile import CycleData, Mood, Symptom, UserProfile

DEFAULT_PROFILE_KEY = "default"

_SCALAR_FIELDS = (
    "name",
    "average_cycle_length",
    "average_period_length",
    "luteal_phase_length",
    "last_period_start",
    "last_period_end",
    "next_period_prediction",
    "ovulation_prediction",
    "fertile_window_start",
    "fertile_window_end",
)


def _normalize_key(profile_key: str) -> str:
    normalized = profile_key.strip().lower()
    if not normalized:
        raise ValueError("Profile key cannot be empty.")
    return normalized


class ProfileRepository:
    """Maps the profile aggregate onto the ``user_profiles`` and ``cycle_records`` tables."""

    def get(self, session: Session, profile_key: str = DEFAULT_PROFILE_KEY) -> UserProfile | None:
        model = self._find(session, profile_key)
        if model is None:
            return None
        return self._to_domain(model)

    def upsert(
        self,
        session: Session,
        profile: UserProfile,
        profile_key: str = DEFAULT_PROFILE_KEY,
    ) -> UserProfile:
        model = self._find(session, profile_key)
        if model is None:
            model = UserProfileModel(
                profile_key=_normalize_key(profile_key),
                average_cycle_length=profile.average_cycle_length,
                average_period_length=profile.average_period_length,
            )
            session.add(model)

        self._apply_profile(model, profile)
        self._sync_cycles(session, model, profile.cycle_history)
        session.flush()
        return self._to_domain(model)

    def delete(self, session: Session, profile_key: str = DEFAULT_PROFILE_KEY) -> bool:
        model = self._find(session, profile_key)
        if model is None:
            return False
        session.delete(model)
        session.flush()
        return True

    @staticmethod
    def _find(session: Session, profile_key: str) -> UserProfileModel | None:
        stmt = select(UserProfileModel).where(UserProfileModel.profile_key == _normalize_key(profile_key))
        return session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _apply_profile(model: UserProfileModel, profile: UserProfile) -> None:
        for field_name in _SCALAR_FIELDS:
            setattr(model, field_name, getattr(profile, field_name))
        model.updated_at = datetime.now(timezone.utc)

    @staticmethod
    def _sync_cycles(session: Session, model: UserProfileModel, cycles: Iterable[CycleData]) -> None:
        # Cycle rows are rewritten wholesale; history is small and order must match insertion order.
        model.cycles.clear()
        session.flush()
        for position, cycle in enumerate(cycles):
            model.cycles.append(
                CycleRecordModel(
                    cycle_id=cycle.id,
                    position=position,
                    start_date=cycle.start_date,
                    end_date=cycle.end_date,
                    moods=[mood.model_dump(mode="json") for mood in cycle.moods],
                    symptoms=[symptom.model_dump(mode="json") for symptom in cycle.symptoms],
                )
            )

    @staticmethod
    def _to_domain(model: UserProfileModel) -> UserProfile:
        history = [
            CycleData(
                id=record.cycle_id,
                start_date=record.start_date,
                end_date=record.end_date,
                moods=[Mood.model_validate(item) for item in record.moods or []],
                symptoms=[Symptom.model_validate(item) for item in record.symptoms or []],
            )
            for record in sorted(model.cycles, key=lambda item: item.position)
        ]
        payload = {field_name: getattr(model, field_name) for field_name in _SCALAR_FIELDS}
        return UserProfile(**payload, cycle_history=history)


profiles = ProfileRepository()

__all__ = ["DEFAULT_PROFILE_KEY", "ProfileRepository", "profiles"]

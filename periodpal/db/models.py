"""ORM models backing the local profile database."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class UserProfileModel(TimestampMixin, Base):
    __tablename__ = "user_profiles"
    __table_args__ = (Index("ix_user_profiles_profile_key", "profile_key", unique=True),)

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    profile_key: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(256), default="", nullable=False)
    average_cycle_length: Mapped[int] = mapped_column(Integer, nullable=False)
    average_period_length: Mapped[int] = mapped_column(Integer, nullable=False)
    luteal_phase_length: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_period_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_period_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    next_period_prediction: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    ovulation_prediction: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    fertile_window_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    fertile_window_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    cycles: Mapped[list["CycleRecordModel"]] = relationship(
        back_populates="profile",
        cascade="all, delete-orphan",
        order_by="CycleRecordModel.position",
    )


class CycleRecordModel(Base):
    __tablename__ = "cycle_records"
    __table_args__ = (UniqueConstraint("profile_id", "cycle_id", name="uq_cycle_records_profile_cycle"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    cycle_id: Mapped[str] = mapped_column(String(64), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    moods: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    symptoms: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)

    profile: Mapped[UserProfileModel] = relationship(back_populates="cycles")


__all__ = ["CycleRecordModel", "UserProfileModel"]

"""User profile models and the single patch/merge operation."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ProfileModel(BaseModel):
    """Base model exporting camelCase names while accepting snake_case input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Mood(_ProfileModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: str
    intensity: int = Field(default=3, ge=1, le=5)
    timestamp: datetime
    note: Optional[str] = None


class Symptom(_ProfileModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: str
    intensity: int = Field(default=3, ge=1, le=5)
    timestamp: datetime
    note: Optional[str] = None


class CycleDraft(_ProfileModel):
    """A cycle as entered by the user, before an id has been assigned."""

    start_date: date
    end_date: Optional[date] = None
    moods: List[Mood] = Field(default_factory=list)
    symptoms: List[Symptom] = Field(default_factory=list)


class CycleData(CycleDraft):
    id: str


class UserProfile(_ProfileModel):
    name: str = ""
    average_cycle_length: int = Field(default=28, ge=1)
    average_period_length: int = Field(default=5, ge=1)
    luteal_phase_length: Optional[int] = Field(default=None, ge=1)
    last_period_start: Optional[date] = None
    last_period_end: Optional[date] = None
    # Derived by periodpal.prediction.recompute; never patched directly.
    next_period_prediction: Optional[date] = None
    ovulation_prediction: Optional[date] = None
    fertile_window_start: Optional[date] = None
    fertile_window_end: Optional[date] = None
    cycle_history: List[CycleData] = Field(default_factory=list)

    @property
    def current_cycle(self) -> Optional[CycleData]:
        """The most recently added cycle, which receives new moods and symptoms."""
        return self.cycle_history[-1] if self.cycle_history else None


class ProfilePatch(_ProfileModel):
    """Partial update for the user-editable profile fields.

    Only fields explicitly provided are merged; passing ``None`` clears a
    nullable field.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = None
    average_cycle_length: Optional[int] = Field(default=None, ge=1)
    average_period_length: Optional[int] = Field(default=None, ge=1)
    luteal_phase_length: Optional[int] = Field(default=None, ge=1)
    last_period_start: Optional[date] = None
    last_period_end: Optional[date] = None
    cycle_history: Optional[List[CycleData]] = None


PatchInput = Union[ProfilePatch, Mapping[str, Any]]


def apply_patch(profile: UserProfile, patch: PatchInput) -> UserProfile:
    """Return a new profile with the patch's explicitly set fields merged in.

    The input profile is left untouched. Raises ``pydantic.ValidationError``
    when the patch or the merged result is invalid.
    """
    if not isinstance(patch, ProfilePatch):
        patch = ProfilePatch.model_validate(dict(patch))
    payload = profile.model_dump()
    for field_name in patch.model_fields_set:
        value = getattr(patch, field_name)
        if isinstance(value, list):
            value = [item.model_dump() for item in value]
        payload[field_name] = value
    return UserProfile.model_validate(payload)


def append_to_current_cycle(
    profile: UserProfile,
    *,
    mood: Optional[Mood] = None,
    symptom: Optional[Symptom] = None,
) -> UserProfile:
    """Return a copy of the profile with the entry appended to the last cycle.

    With an empty history the profile is returned unchanged.
    """
    current = profile.current_cycle
    if current is None:
        return profile
    updates: dict[str, Any] = {}
    if mood is not None:
        updates["moods"] = [*current.moods, mood]
    if symptom is not None:
        updates["symptoms"] = [*current.symptoms, symptom]
    history = list(profile.cycle_history)
    history[-1] = current.model_copy(update=updates)
    return profile.model_copy(update={"cycle_history": history})


def dump_profile(profile: UserProfile) -> dict[str, Any]:
    """JSON-compatible dict using the exported camelCase field names."""
    return profile.model_dump(mode="json", by_alias=True)


__all__ = [
    "CycleData",
    "CycleDraft",
    "Mood",
    "PatchInput",
    "ProfilePatch",
    "Symptom",
    "UserProfile",
    "append_to_current_cycle",
    "apply_patch",
    "dump_profile",
]

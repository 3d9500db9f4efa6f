"""PeriodPal cycle tracking core: prediction, profile state and local persistence."""

from .controller import ControllerState, ImportResult, ProfileController, create_controller
from .profile import CycleData, CycleDraft, Mood, ProfilePatch, Symptom, UserProfile

__all__ = [
    "ControllerState",
    "CycleData",
    "CycleDraft",
    "ImportResult",
    "Mood",
    "ProfileController",
    "ProfilePatch",
    "Symptom",
    "UserProfile",
    "create_controller",
]

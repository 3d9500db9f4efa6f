"""Local cache mirror of the user profile."""

from .profile_cache import ProfileCache

__all__ = ["ProfileCache"]

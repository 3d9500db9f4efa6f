from .profiles import ProfileRepository, profiles

__all__ = ["ProfileRepository", "profiles"]

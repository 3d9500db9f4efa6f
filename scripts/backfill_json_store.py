"""Copy a JSON profile (file store or cache mirror) into the profile database."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from periodpal.config import get_settings
from periodpal.db.session import build_engine
from periodpal.logging_config import configure_logging
from periodpal.profile import UserProfile
from periodpal.stores import DatabaseProfileStore

logger = logging.getLogger("backfill")


def load_profile(path: Path, key: Optional[str] = None) -> Optional[UserProfile]:
    """Read a profile from ``path``; ``key`` selects an entry of a cache mirror file."""
    if not path.exists():
        logger.info("No JSON profile found at %s", path)
        return None
    with path.open(encoding="utf-8") as handle:
        payload = json.load(handle)
    if key is not None:
        payload = payload.get(key) if isinstance(payload, dict) else None
        if payload is None:
            logger.info("No profile stored under key %s in %s", key, path)
            return None
    try:
        return UserProfile.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Skipping invalid profile payload in %s: %s", path, exc)
        return None


def backfill_profile(
    profile: UserProfile,
    store: DatabaseProfileStore,
    *,
    overwrite: bool = False,
) -> bool:
    """Write ``profile`` into the database; existing rows are kept unless ``overwrite``."""
    if not store.initialize():
        raise RuntimeError("Profile database could not be initialised.")
    if not overwrite and store.read_profile() is not None:
        logger.info("Database already holds a profile; pass --overwrite to replace it")
        return False
    written = store.write_profile(profile)
    if written:
        logger.info("Imported profile with %d cycles", len(profile.cycle_history))
    return written


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Backfill a JSON profile into the local database.")
    parser.add_argument("--source", type=Path, default=settings.store_path)
    parser.add_argument(
        "--key",
        default=None,
        help=f"Read the profile from a cache mirror file under this key (e.g. {settings.cache_key}).",
    )
    parser.add_argument("--database-url", default=settings.database_url)
    parser.add_argument("--overwrite", action="store_true")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = parse_args(argv)
    profile = load_profile(args.source, args.key)
    if profile is None:
        return 1
    engine = build_engine(args.database_url)
    try:
        imported = backfill_profile(profile, DatabaseProfileStore(engine), overwrite=args.overwrite)
    finally:
        engine.dispose()
    logger.info("Backfill completed: %d profile(s)", int(imported))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

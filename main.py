"""
Leada Coaching Core — Maintenance Entry Point.

    python main.py seed            # load the learning-package catalog
    python main.py cleanup-cache   # drop expired cache entries
"""

import argparse
import logging

from leada.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger("leada")


def seed() -> None:
    from leada.data.activity_db import PackageDB
    from leada.data.seed import seed_catalog

    created = seed_catalog(PackageDB())
    logger.info("Seeded %d learning packages", len(created))


def cleanup_cache() -> None:
    from leada.data.cache_store import CacheStore

    removed = CacheStore().cleanup_expired()
    logger.info("Removed %d expired cache entries", removed)


COMMANDS = {
    "seed": seed,
    "cleanup-cache": cleanup_cache,
}


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Leada maintenance tasks")
    parser.add_argument("command", choices=sorted(COMMANDS))
    args = parser.parse_args(argv)
    COMMANDS[args.command]()


if __name__ == "__main__":
    main()

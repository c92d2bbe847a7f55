from __future__ import annotations

import logging

from .app import run
from .settings import Settings


def main() -> int:
    """Entry point for running Cognitrain from the command line."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).debug("Using progress store at %s", settings.db_path)
    return run(settings=settings)


if __name__ == "__main__":
    raise SystemExit(main())

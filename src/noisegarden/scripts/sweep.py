# src/noisegarden/scripts/sweep.py
"""Delete expired content once; suitable for cron when the app runs on_read."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence

from noisegarden.core.settings import settings
from noisegarden.db.session import SessionLocal
from noisegarden.services.expiry import ExpirySweeper

logger = logging.getLogger("noisegarden.scripts.sweep")


def run_sweep() -> int:
    """Run a single sweep in its own transaction and return the deleted count."""
    db = SessionLocal()
    try:
        deleted = ExpirySweeper.sweep(db)
        db.commit()
        return deleted
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(message)s")

    deleted = run_sweep()
    logger.info("Removed %d expired content items", deleted)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

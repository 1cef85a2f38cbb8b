# src/noisegarden/scripts/migrate.py
"""Apply Alembic migrations up to the latest revision."""

from __future__ import annotations

import argparse
import os

from alembic import command
from alembic.config import Config

from noisegarden.core.settings import settings

MIGRATIONS_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")
)


def build_config() -> Config:
    cfg = Config(os.path.join(MIGRATIONS_DIR, "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", settings.database_url_sync)
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    return cfg


def run_upgrade(revision: str = "head") -> None:
    command.upgrade(build_config(), revision)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("revision", nargs="?", default="head")
    run_upgrade(parser.parse_args().revision)

# src/condo_parcels/scripts/migrate.py
"""Apply Alembic migrations to the local store database."""
from __future__ import annotations

import os

from alembic import command
from alembic.config import Config

from condo_parcels.core.settings import settings

MIGRATIONS_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")
)


def build_config(database_url: str | None = None) -> Config:
    """Return an Alembic config pointed at the bundled migrations folder."""
    cfg = Config()
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    cfg.set_main_option("sqlalchemy.url", database_url or settings.effective_database_url)
    return cfg


def run_upgrade_head(database_url: str | None = None) -> None:
    command.upgrade(build_config(database_url), "head")


if __name__ == "__main__":
    run_upgrade_head()

"""Option defaults shared by CLI commands."""

from __future__ import annotations

from pathlib import Path

from rowmodel.config import load_config


def resolve_db_path(db: Path | None) -> Path:
    """Return *db*, or the database path from configuration when omitted."""
    if db is not None:
        return db
    return Path(load_config().database.path)

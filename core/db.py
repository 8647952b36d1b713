"""
Database initialization, migration and tile-address consistency checks.
"""

from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

import core.config as config
from core.models import Memory, PaidTile
from core.walls import capacity


class DB:
    """Database state holder (avoids global scoping issues)."""

    engine = None
    SessionLocal = None


def _get_alembic_config():
    try:
        from alembic.config import Config
    except ImportError as exc:
        raise RuntimeError("Alembic is required for migrations") from exc

    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    alembic_cfg = Config(os.path.join(base_dir, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(base_dir, "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", config.DATABASE_URL)
    return alembic_cfg


def _get_schema_revisions(engine) -> tuple[Optional[str], Optional[str]]:
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory

    alembic_cfg = _get_alembic_config()
    script = ScriptDirectory.from_config(alembic_cfg)
    head_revision = script.get_current_head()
    with engine.connect() as conn:
        context = MigrationContext.configure(conn)
        current_revision = context.get_current_revision()
    return current_revision, head_revision


def _ensure_schema_up_to_date(engine) -> None:
    from alembic import command

    current_rev, head_rev = _get_schema_revisions(engine)
    if current_rev == head_rev:
        return

    if config.AUTO_MIGRATE_ON_STARTUP:
        alembic_cfg = _get_alembic_config()
        command.upgrade(alembic_cfg, "head")
        new_current, _ = _get_schema_revisions(engine)
        if new_current != head_rev:
            raise RuntimeError("Database migration did not reach expected revision")
    else:
        raise RuntimeError(
            f"Database schema out of date (current={current_rev}, expected={head_rev}). "
            "Run 'alembic upgrade head' or set AUTO_MIGRATE_ON_STARTUP=true for dev."
        )


def wall_occupancy(engine) -> dict[str, dict]:
    """Per stored wall slug: record count and highest tile index (memories and audit rows)."""
    occupancy: dict[str, dict] = {}
    with engine.connect() as conn:
        for model in (Memory, PaidTile):
            rows = conn.execute(
                select(model.wall_slug, func.count(), func.max(model.tile_index))
                .group_by(model.wall_slug)
            )
            for wall_slug, count, max_index in rows:
                entry = occupancy.setdefault(wall_slug, {"records": 0, "max_tile_index": -1})
                if model is Memory:
                    entry["records"] += count
                entry["max_tile_index"] = max(entry["max_tile_index"], max_index)
    return occupancy


def check_tile_addresses(engine) -> None:
    """
    Refuse to start when stored tiles fall outside WALL_CAPACITIES.

    This happens when a wall is removed or shrunk in configuration after
    tiles on it were claimed; those records would be unreachable.
    """
    problems = []
    occupancy = wall_occupancy(engine)
    for wall_slug, entry in sorted(occupancy.items()):
        if wall_slug not in config.WALL_CAPACITIES:
            problems.append(f"wall '{wall_slug}' has stored tiles but no configured capacity")
        elif entry["max_tile_index"] >= capacity(wall_slug):
            problems.append(
                f"wall '{wall_slug}' has tile index {entry['max_tile_index']} "
                f"beyond capacity {capacity(wall_slug)}"
            )
    if problems:
        raise RuntimeError("Stored tiles do not match WALL_CAPACITIES: " + "; ".join(problems))

    for wall_slug in config.WALL_CAPACITIES:
        records = occupancy.get(wall_slug, {}).get("records", 0)
        config.logger.info(f"Wall \"{wall_slug}\": {records}/{capacity(wall_slug)} tiles recorded")


def init_db() -> None:
    """Connect, bring the schema to head, then verify stored tiles against the wall table."""
    config.validate_and_prepare_config()

    config.logger.info("Connecting to database...")
    engine_kwargs = {"pool_pre_ping": True}
    if config.DB_BACKEND == "sqlite":
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    DB.engine = create_engine(config.DATABASE_URL, **engine_kwargs)
    DB.SessionLocal = sessionmaker(bind=DB.engine)

    _ensure_schema_up_to_date(DB.engine)
    check_tile_addresses(DB.engine)

    config.logger.info("Database initialized")

"""Brings the monitor's SQLite schema to the Alembic head on startup."""

import asyncio
from dataclasses import dataclass
from pathlib import Path

import structlog
from alembic import command
from alembic.config import Config
from sqlalchemy import inspect, text

import lanmon.core.database as db_module

logger = structlog.get_logger()

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

VERSION_TABLE = "alembic_version"


@dataclass(frozen=True)
class SchemaState:
    missing_tables: frozenset[str]
    revision: str | None
    tracked: bool

    @property
    def empty(self) -> bool:
        return self.missing_tables == frozenset(db_module.Base.metadata.tables)


def _alembic_cfg() -> Config:
    """Alembic config for the live engine, independent of the working directory."""
    cfg = Config(str(_PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_PROJECT_ROOT / "alembic"))
    url = db_module.engine.url.render_as_string(hide_password=False)
    # ConfigParser interpolation
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def read_schema_state(connection) -> SchemaState:
    """Which monitor tables are missing and which revision is stamped (sync)."""
    present = set(inspect(connection).get_table_names())
    revision = None
    if VERSION_TABLE in present:
        revision = connection.execute(text(f"SELECT version_num FROM {VERSION_TABLE}")).scalar()
    return SchemaState(
        missing_tables=frozenset(db_module.Base.metadata.tables) - present,
        revision=revision,
        tracked=VERSION_TABLE in present,
    )


async def ensure_db_migrated() -> SchemaState:
    """Migrate the configured database and return the state found before migrating.

    An untracked database (no version table) is created or completed from the
    models and stamped at head, so rows already in it are kept. A tracked one
    is upgraded through the revision chain.
    """
    engine = db_module.engine
    async with engine.connect() as conn:
        state = await conn.run_sync(read_schema_state)

    if state.tracked:
        logger.info("migrations_upgrade", revision=state.revision)
        await asyncio.to_thread(command.upgrade, _alembic_cfg(), "head")
        return state

    if state.missing_tables:
        logger.info(
            "migrations_create_tables",
            fresh=state.empty,
            tables=sorted(state.missing_tables),
        )
        async with engine.begin() as conn:
            await conn.run_sync(db_module.Base.metadata.create_all)
    logger.info("migrations_stamp_head", fresh=state.empty)
    await asyncio.to_thread(command.stamp, _alembic_cfg(), "head")
    return state

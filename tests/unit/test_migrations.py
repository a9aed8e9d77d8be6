"""Tests for the baseline revision and the startup migration path."""

from unittest.mock import patch

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import lanmon.core.database as db_module
from lanmon.core.database import Base
from lanmon.core.migrations import _PROJECT_ROOT, ensure_db_migrated
from lanmon.schemas.tracker import TicketCreate
from lanmon.services.history import HistoryStore
from lanmon.services.tickets import TicketService

MONITOR_TABLES = {"history_entries", "alerts", "agents", "tickets", "ideas"}


def _cfg(connection) -> Config:
    cfg = Config(str(_PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_PROJECT_ROOT / "alembic"))
    cfg.attributes["connection"] = connection
    return cfg


def _sync_engine(db_path):
    return create_engine(f"sqlite:///{db_path}")


def _revision(db_path) -> str | None:
    engine = _sync_engine(db_path)
    with engine.connect() as conn:
        row = conn.execute(text("SELECT version_num FROM alembic_version")).first()
    engine.dispose()
    return row[0] if row else None


# ── Baseline revision ─────────────────────────────────────────────────────────


class TestBaselineRevision:
    @pytest.fixture
    def migrated(self, tmp_path):
        engine = _sync_engine(tmp_path / "baseline.db")
        with engine.begin() as conn:
            command.upgrade(_cfg(conn), "head")
        yield engine
        engine.dispose()

    def test_creates_monitor_and_tracker_tables(self, migrated, tmp_path):
        with migrated.connect() as conn:
            assert set(inspect(conn).get_table_names()) == MONITOR_TABLES | {"alembic_version"}
        assert _revision(tmp_path / "baseline.db") == "001"

    def test_history_is_indexed_for_window_queries(self, migrated):
        with migrated.connect() as conn:
            indexes = {i["name"]: i["column_names"] for i in inspect(conn).get_indexes("history_entries")}
        assert indexes["ix_history_entries_service_id"] == ["service_id"]
        assert indexes["ix_history_entries_timestamp"] == ["timestamp"]

    def test_idea_links_to_converted_ticket(self, migrated):
        with migrated.connect() as conn:
            insp = inspect(conn)
            idea_cols = {c["name"] for c in insp.get_columns("ideas")}
            ticket_cols = {c["name"] for c in insp.get_columns("tickets")}
        assert {"tags", "submitted_by", "converted_ticket_id"} <= idea_cols
        assert {"lane", "priority", "assignee", "branch"} <= ticket_cols

    def test_columns_match_models(self, migrated):
        with migrated.connect() as conn:
            insp = inspect(conn)
            for name, table in Base.metadata.tables.items():
                migrated_cols = {c["name"] for c in insp.get_columns(name)}
                assert migrated_cols == set(table.columns.keys()), name

    def test_downgrade_drops_everything(self, migrated):
        with migrated.begin() as conn:
            command.downgrade(_cfg(conn), "base")
        with migrated.connect() as conn:
            assert set(inspect(conn).get_table_names()) <= {"alembic_version"}


# ── Startup migration ─────────────────────────────────────────────────────────


class TestEnsureDbMigrated:
    async def _migrate(self, db_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
        try:
            with patch.object(db_module, "engine", engine):
                return await ensure_db_migrated()
        finally:
            await engine.dispose()

    async def test_fresh_file_is_created_and_stamped(self, tmp_path):
        db_path = tmp_path / "fresh.db"

        state = await self._migrate(db_path)

        assert state.empty and not state.tracked
        assert _revision(db_path) == "001"

    async def test_untracked_history_survives_stamping(self, tmp_path):
        db_path = tmp_path / "untracked.db"
        engine = _sync_engine(db_path)
        with engine.begin() as conn:
            Base.metadata.create_all(conn)
            conn.execute(text(
                "INSERT INTO history_entries (service_id, timestamp, status, response_ms) "
                "VALUES ('ollama', '2026-01-01 00:00:00', 'up', 12)"
            ))
        engine.dispose()

        state = await self._migrate(db_path)

        assert state.missing_tables == frozenset()
        assert _revision(db_path) == "001"
        engine = _sync_engine(db_path)
        with engine.connect() as conn:
            assert conn.execute(text("SELECT service_id, status FROM history_entries")).all() == [("ollama", "up")]
        engine.dispose()

    async def test_missing_tracker_tables_are_added(self, tmp_path):
        db_path = tmp_path / "partial.db"
        engine = _sync_engine(db_path)
        with engine.begin() as conn:
            Base.metadata.tables["history_entries"].create(conn)
            Base.metadata.tables["alerts"].create(conn)
        engine.dispose()

        state = await self._migrate(db_path)

        assert state.missing_tables == {"agents", "tickets", "ideas"}
        engine = _sync_engine(db_path)
        with engine.connect() as conn:
            assert MONITOR_TABLES <= set(inspect(conn).get_table_names())
        engine.dispose()

    async def test_tracked_db_is_upgraded_in_place(self, tmp_path):
        db_path = tmp_path / "tracked.db"
        engine = _sync_engine(db_path)
        with engine.begin() as conn:
            command.upgrade(_cfg(conn), "head")
        engine.dispose()

        state = await self._migrate(db_path)

        assert state.tracked
        assert state.revision == "001"
        assert _revision(db_path) == "001"

    async def test_stores_work_after_startup_migration(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'live.db'}")
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        try:
            with patch.object(db_module, "engine", engine):
                await ensure_db_migrated()
            await HistoryStore(session_factory=factory).record("nas", "down", None)
            ticket = await TicketService(session_factory=factory).create_ticket(TicketCreate(title="Replace NAS disk"))
        finally:
            await engine.dispose()

        assert ticket.id
        assert ticket.lane == "backlog"


def test_ensure_data_dir_creates_parent(tmp_path):
    target = tmp_path / "nested" / "state" / "lan-monitor.db"
    db_module.ensure_data_dir(f"sqlite+aiosqlite:///{target}")
    assert target.parent.is_dir()


def test_ensure_data_dir_ignores_memory_db():
    db_module.ensure_data_dir("sqlite+aiosqlite://")

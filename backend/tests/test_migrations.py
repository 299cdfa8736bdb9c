from __future__ import annotations

import importlib.util
from pathlib import Path

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from tomorrows_winner.models import Base

VERSIONS = Path(__file__).resolve().parents[1] / "alembic" / "versions"


def _load(name: str):
    spec = importlib.util.spec_from_file_location(name, VERSIONS / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_migrations_chain_and_match_models() -> None:
    first = _load("0001_competition_schema")
    second = _load("0002_cron_runs")
    assert first.down_revision is None
    assert second.down_revision == first.revision

    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    with engine.begin() as conn:
        context = MigrationContext.configure(conn)
        with Operations.context(context):
            first.upgrade()
            second.upgrade()

    inspector = inspect(engine)
    assert set(inspector.get_table_names()) == set(Base.metadata.tables)
    for table in Base.metadata.tables.values():
        migrated = {column["name"] for column in inspector.get_columns(table.name)}
        assert migrated == set(table.columns.keys()), table.name

    uniques = {item["name"] for item in inspector.get_unique_constraints("options")}
    assert "uq_options_competition_symbol" in uniques


def test_migrations_downgrade_cleanly() -> None:
    first = _load("0001_competition_schema")
    second = _load("0002_cron_runs")

    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    with engine.begin() as conn:
        context = MigrationContext.configure(conn)
        with Operations.context(context):
            first.upgrade()
            second.upgrade()
            second.downgrade()
            first.downgrade()

    assert inspect(engine).get_table_names() == []

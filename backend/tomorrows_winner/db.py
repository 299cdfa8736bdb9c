from __future__ import annotations

from collections.abc import Generator, Sequence
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from tomorrows_winner.config import get_settings

engine = create_engine(get_settings().database_url, pool_pre_ping=True, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    with SessionLocal() as session:
        yield session


def can_reach_db(session: Session) -> bool:
    try:
        session.execute(text("SELECT 1"))
        return True
    except Exception:  # noqa: BLE001
        session.rollback()
        return False


def _dialect_insert(session: Session) -> Any:
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise ValueError(f"upsert is not supported for dialect '{dialect}'")
    return insert


def upsert_rows(
    session: Session,
    model: type[DeclarativeBase],
    rows: Sequence[dict[str, Any]],
    conflict_columns: Sequence[str],
    update_columns: Sequence[str] | None = None,
) -> int:
    """Insert-or-update ``rows`` keyed by the unique ``conflict_columns``.

    Every row must carry the same keys. Columns not named in the conflict target
    are overwritten on conflict unless ``update_columns`` narrows them.
    """
    if not rows:
        return 0

    insert = _dialect_insert(session)
    stmt = insert(model.__table__).values(list(rows))
    if update_columns is None:
        update_columns = [key for key in rows[0] if key not in conflict_columns]
    if update_columns:
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_columns),
            set_={column: stmt.excluded[column] for column in update_columns},
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))
    session.execute(stmt)
    return len(rows)

from sqlalchemy import Table
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session
from app.db.base import utcnow


def upsert_row(db: Session, table: Table, conflict_column: str, values: dict) -> dict:
    """INSERT ... ON CONFLICT (conflict_column) DO UPDATE, returning the resulting row.

    Every column in ``values`` is overwritten on conflict; ``updated_at`` is refreshed.
    """
    insert = sqlite_insert if db.get_bind().dialect.name == "sqlite" else pg_insert
    now = utcnow()
    stmt = insert(table).values(**values, created_at=now, updated_at=now)
    update_set = {key: stmt.excluded[key] for key in values if key != conflict_column}
    update_set["updated_at"] = now
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c[conflict_column]],
        set_=update_set,
    ).returning(*table.c)
    return dict(db.execute(stmt).mappings().one())

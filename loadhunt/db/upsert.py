"""
INSERT ... ON CONFLICT DO NOTHING for the bound dialect (PostgreSQL in production,
SQLite in tests). Both dialects expose the same on_conflict_do_nothing API.
"""
from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session


def insert_ignore(db: Session, model: Any, rows: list[dict[str, Any]], index_elements: list[str]) -> int:
    """Insert rows, skipping any that conflict on index_elements. Returns rows actually inserted."""
    if not rows:
        return 0
    insert = sqlite_insert if db.get_bind().dialect.name == "sqlite" else pg_insert
    stmt = insert(model).values(rows).on_conflict_do_nothing(index_elements=index_elements)
    result = db.execute(stmt)
    return max(result.rowcount or 0, 0)

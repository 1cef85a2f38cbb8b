"""Dialect-aware ``INSERT ... ON CONFLICT DO UPDATE`` helper.

Flags, votes, mutes and bans are keyed so that a repeated write from the
same actor overwrites the previous one. Both supported stores implement
that natively, which keeps the write a single atomic statement.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

__all__ = ["upsert"]

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert(
    db: Session,
    model: type[Any],
    values: Mapping[str, Any],
    *,
    conflict_columns: Iterable[str],
    update_columns: Iterable[str],
) -> None:
    """Insert ``values`` into ``model``'s table or overwrite ``update_columns``.

    Args:
        db: Active session; the statement joins its transaction.
        model: Mapped class whose table receives the row.
        values: Column values for the inserted row.
        conflict_columns: Columns of the unique constraint that detects the duplicate.
        update_columns: Columns copied from the rejected row onto the existing one.

    Rows already loaded in the session are not refreshed; re-select them with
    ``populate_existing`` to observe the write.

    Raises:
        NotImplementedError: If the bound dialect has no native upsert.
    """
    dialect = db.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise NotImplementedError(f"upsert is not supported on {dialect!r}")

    stmt = insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_={column: stmt.excluded[column] for column in update_columns},
    )
    db.execute(stmt)

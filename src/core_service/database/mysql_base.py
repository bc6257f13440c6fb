from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    shared = conn_factory.shared_connection()
    if shared is not None:
        # the enclosing transaction() commits or rolls back
        cur = shared.cursor(dictionary=dictionary)
        try:
            yield shared, cur
        finally:
            cur.close()
        return

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def build_where(clauses: Iterable[Tuple[str, Any]]) -> Tuple[str, list]:
    """Join ``(sql_fragment, param)`` pairs into a WHERE clause.

    Pairs with a ``None`` param are skipped so callers can pass optional
    filters straight through.
    """
    parts: list[str] = []
    params: list = []
    for fragment, value in clauses:
        if value is None:
            continue
        parts.append(fragment)
        if isinstance(value, (list, tuple)):
            params.extend(value)
        else:
            params.append(value)
    if not parts:
        return "", params
    return "WHERE " + " AND ".join(parts), params


def placeholders(values: Sequence[Any]) -> str:
    return ",".join(["%s"] * len(values))


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally (use with ``ESCAPE '!'``)."""
    return value.replace("!", "!!").replace("%", "!%").replace("_", "!_")

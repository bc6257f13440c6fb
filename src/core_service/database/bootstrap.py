from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


# One token per match: quoted text and comments are consumed whole so a ';'
# inside them never ends a statement.
_SQL_TOKEN = re.compile(
    r"'(?:[^'\\]|\\.|'')*'"
    r'|"(?:[^"\\]|\\.|"")*"'
    r"|`[^`]*`"
    r"|--[^\n]*"
    r"|/\*.*?\*/"
    r"|;"
    r"|[^'\"`;/-]+"
    r"|.",
    re.DOTALL,
)

# the target database comes from DB_CONFIG, not from the script
_SKIPPED = re.compile(r"(?i)^(CREATE\s+DATABASE|USE)\b")


def iter_sql_statements(sql: str) -> Iterator[str]:
    """Yield the top-level statements of a DDL script, without comments."""
    parts: list[str] = []
    for token in _SQL_TOKEN.findall(sql + ";"):
        if token.startswith("--") or token.startswith("/*"):
            continue
        if token != ";":
            parts.append(token)
            continue
        statement = "".join(parts).strip()
        parts = []
        if statement and not _SKIPPED.match(statement):
            yield statement


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = DatabaseConnection(target).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path = SCHEMA_PATH) -> int:
    """Create the database and tables. Returns the number of executed statements."""
    ensure_database_exists(db_config)

    sql = Path(schema_path).read_text(encoding="utf-8")
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    executed = 0
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
            executed += 1
        conn.commit()
    finally:
        conn.close()

    logger.info("Schema applied (%d statements)", executed)
    return executed


def list_tables(db_config: dict) -> list[str]:
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()

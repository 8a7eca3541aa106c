"""
SQL migration runner shared by the setup endpoints and run_migration.py
"""

import logging
import re
from pathlib import Path
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..config import MIGRATIONS_DIR

logger = logging.getLogger(__name__)

# $$ or a tagged $body$ opener; the body ends at the same tag
DOLLAR_QUOTE_RE = re.compile(r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$")


class MigrationNotFoundError(FileNotFoundError):
    pass


def split_sql_statements(sql: str) -> list[str]:
    """
    Split a SQL script on top-level semicolons.

    Semicolons inside quoted strings, dollar-quoted bodies and comments do
    not end a statement. Comment-only chunks are dropped.
    """
    statements: list[str] = []
    current: list[str] = []
    i = 0
    n = len(sql)
    quote: Optional[str] = None

    while i < n:
        ch = sql[i]

        if quote:
            if sql.startswith(quote, i):
                current.append(quote)
                i += len(quote)
                quote = None
                continue
            current.append(ch)
            i += 1
            continue

        if sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end == -1 else end + 1
            current.append("\n")
            continue
        if sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue
        dollar = DOLLAR_QUOTE_RE.match(sql, i) if ch == "$" else None
        if dollar:
            quote = dollar.group(0)
            current.append(quote)
            i = dollar.end()
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            statement = "".join(current).strip()
            if statement:
                statements.append(statement)
            current = []
            i += 1
            continue

        current.append(ch)
        i += 1

    statement = "".join(current).strip()
    if statement:
        statements.append(statement)
    return statements


def list_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """Names (without .sql) of the migrations shipped with the API"""
    if not migrations_dir.is_dir():
        return []
    return sorted(p.stem for p in migrations_dir.glob("*.sql"))


def migration_path(name: str, migrations_dir: Path = MIGRATIONS_DIR) -> Path:
    path = migrations_dir / f"{name}.sql"
    if not path.is_file():
        raise MigrationNotFoundError(f"Migration not found: {name}")
    return path


def run_sql_file(engine: Engine, path: Path) -> int:
    """Execute every statement of a SQL file in one transaction; returns the statement count"""
    statements = split_sql_statements(path.read_text(encoding="utf-8"))
    logger.info(f"📥 Running migration {path.name} ({len(statements)} statements)")

    with engine.begin() as conn:
        for i, statement in enumerate(statements, 1):
            logger.debug(f"Executing statement {i}/{len(statements)}")
            conn.execute(text(statement))

    logger.info(f"✅ Migration {path.name} completed")
    return len(statements)

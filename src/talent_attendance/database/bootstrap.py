"""Schema and seed loading for the talent attendance database.

The SQL files live next to this module so an installed package can set up
a fresh MySQL database without the source checkout.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Union

from .connection import CHARSET, COLLATION, DBConfig, DatabaseConnection
from .mysql_base import db_cursor

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")
SEED_PATH = Path(__file__).with_name("seed.sql")

# A statement is a run of quoted strings or characters other than ';'.
_STATEMENT = re.compile(r"""(?:'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*"|[^;'"])+""", re.S)
_LINE_COMMENT = re.compile(r"^\s*--.*$", re.M)
# The target database comes from DB_CONFIG, never from the file.
_DATABASE_DIRECTIVE = re.compile(r"^\s*(?:CREATE\s+DATABASE|USE)\b", re.I)


def split_statements(sql: str) -> Iterator[str]:
    for match in _STATEMENT.finditer(_LINE_COMMENT.sub("", sql)):
        statement = match.group(0).strip()
        if statement and not _DATABASE_DIRECTIVE.match(statement):
            yield statement


def run_sql_file(db_config: dict, path: Union[str, Path]) -> int:
    """Execute every statement of ``path`` in one transaction; returns the count."""

    statements = list(split_statements(Path(path).read_text(encoding="utf-8")))
    factory = DatabaseConnection(DBConfig.from_dict(db_config))
    with db_cursor(factory, dictionary=False) as (_, cur):
        for statement in statements:
            cur.execute(statement)
    return len(statements)


def ensure_database_exists(db_config: dict) -> None:
    config = DBConfig.from_dict(db_config)
    conn = DatabaseConnection(config).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` CHARACTER SET {CHARSET} COLLATE {COLLATION}"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: Union[str, Path] = SCHEMA_PATH) -> None:
    ensure_database_exists(db_config)
    count = run_sql_file(db_config, schema_path)
    logger.info("schema applied to %s (%d statements)", DBConfig.from_dict(db_config).describe(), count)


def apply_seed_sql(db_config: dict, *, seed_path: Union[str, Path] = SEED_PATH) -> None:
    count = run_sql_file(db_config, seed_path)
    logger.info("seed applied to %s (%d statements)", DBConfig.from_dict(db_config).describe(), count)


def list_tables(db_config: dict) -> list[str]:
    factory = DatabaseConnection(DBConfig.from_dict(db_config))
    with db_cursor(factory, dictionary=False) as (_, cur):
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]

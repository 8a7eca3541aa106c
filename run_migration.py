"""
Generic migration runner script
Usage: python run_migration.py <migration_file.sql | migration_name>
"""

import logging
import sys
from pathlib import Path

from veridie.config import MIGRATIONS_DIR
from veridie.database import engine
from veridie.utils.migrations import run_sql_file

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def resolve_migration(arg: str) -> Path:
    path = Path(arg)
    if path.is_file():
        return path
    return MIGRATIONS_DIR / (arg if arg.endswith(".sql") else f"{arg}.sql")


def main(argv: list[str]) -> int:
    if len(argv) < 2:
        logger.error("Usage: python run_migration.py <migration_file.sql>")
        return 1

    migration_file = resolve_migration(argv[1])
    if not migration_file.is_file():
        logger.error(f"Migration file not found: {migration_file}")
        return 1

    try:
        statements = run_sql_file(engine, migration_file)
    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        return 1

    logger.info(f"✅ Migration completed successfully! ({statements} statements)")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))

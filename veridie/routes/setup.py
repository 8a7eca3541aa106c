"""
Setup Routes
Operator-only endpoints for applying the bundled SQL migrations
"""

import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from .. import config
from ..database import engine
from ..security_utils import is_valid_migration_name, sanitize_sql_identifier
from ..utils.migrations import MigrationNotFoundError, list_migrations, migration_path, run_sql_file

logger = logging.getLogger(__name__)


async def require_setup_key(x_setup_key: str = Header(None, alias="X-Setup-Key")) -> None:
    if not config.SETUP_SECRET:
        logger.warning("⚠️ Setup endpoint called but SETUP_SECRET is not configured")
        raise HTTPException(status_code=403, detail="Setup endpoints are disabled")
    if not x_setup_key or not hmac.compare_digest(x_setup_key, config.SETUP_SECRET):
        logger.warning("🚫 Setup endpoint called with an invalid key")
        raise HTTPException(status_code=403, detail="Invalid setup key")


router = APIRouter(prefix="/setup", tags=["Setup"], dependencies=[Depends(require_setup_key)])


@router.get("/migrations")
def get_migrations():
    return {"migrations": list_migrations(config.MIGRATIONS_DIR)}


@router.get("/column-exists")
def column_exists(table: str = Query(...), column: str = Query(...)):
    try:
        table = sanitize_sql_identifier(table)
        column = sanitize_sql_identifier(column)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    inspector = inspect(engine)
    if not inspector.has_table(table):
        return {"exists": False}
    return {"exists": any(c["name"] == column for c in inspector.get_columns(table))}


@router.post("/{name}")
def run_migration(name: str):
    """Apply migrations/<name>.sql in a single transaction"""
    if not is_valid_migration_name(name):
        raise HTTPException(status_code=400, detail="Invalid migration name")

    try:
        path = migration_path(name, config.MIGRATIONS_DIR)
    except MigrationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    try:
        statements = run_sql_file(engine, path)
    except SQLAlchemyError as e:
        logger.error(f"❌ Migration {name} failed: {e.__class__.__name__}")
        raise HTTPException(status_code=500, detail=f"Migration {name} failed") from e

    return {"success": True, "migration": name, "statements": statements}

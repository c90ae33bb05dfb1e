"""Ensure ledger tables and declared indexes exist before the first query"""

import logging
from typing import List

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.schema import CreateIndex

from finance_ledger.infrastructure.database.models import Base

logger = logging.getLogger(__name__)


def _missing_indexes(sync_conn) -> List[str]:
    inspector = inspect(sync_conn)
    missing = []
    for table in Base.metadata.sorted_tables:
        if not inspector.has_table(table.name):
            continue
        existing = {ix["name"] for ix in inspector.get_indexes(table.name)}
        missing.extend(ix.name for ix in table.indexes if ix.name not in existing)
    return missing


async def find_missing_indexes(engine: AsyncEngine) -> List[str]:
    """Names of indexes declared on the models but absent from the database"""
    async with engine.connect() as conn:
        return await conn.run_sync(_missing_indexes)


def index_ddl(engine: AsyncEngine, index_names: List[str]) -> List[str]:
    """CREATE INDEX statements for the given declared indexes"""
    wanted = set(index_names)
    return [
        str(CreateIndex(ix).compile(dialect=engine.dialect)).strip()
        for table in Base.metadata.sorted_tables
        for ix in table.indexes
        if ix.name in wanted
    ]


async def ensure_collections(engine: AsyncEngine) -> List[str]:
    """
    Create missing tables and report declared indexes that do not exist.

    Tables that already exist are left alone, so an index dropped from an
    existing table stays missing. Queries that rely on it take their
    unordered fallback path until the index is created.

    Returns:
        Names of missing indexes (empty when the schema is complete)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    missing = await find_missing_indexes(engine)
    if missing:
        logger.warning(
            "Ledger indexes missing; ordered queries will sort in memory",
            extra={
                "step": "bootstrap",
                "missing_indexes": missing,
                "ddl": index_ddl(engine, missing),
            },
        )
    else:
        logger.info("Ledger collections ready", extra={"step": "bootstrap"})
    return missing

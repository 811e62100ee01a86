"""Database initialization utilities."""

import logging

from cogscreen.catalog.loader import get_catalog
from cogscreen.db.base import Base
from cogscreen.db.session import engine

# Register all tables on the metadata
import cogscreen.models  # noqa: F401

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    """Create all database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def drop_tables() -> None:
    """Drop all database tables (use with caution)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Database tables dropped")


async def init_db() -> None:
    """Initialize database and verify the active catalog loads."""
    await create_tables()
    catalog = get_catalog()
    logger.info(
        f"Database initialization complete (catalog={catalog.catalog_id} "
        f"v{catalog.version} hash={catalog.content_hash[:12]})"
    )

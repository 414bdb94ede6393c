"""Database connection and lifecycle management for tenant AI settings."""

import databases

from pagebuilder.core.config import settings

SCHEMA_SQL = [
    """
    CREATE TABLE IF NOT EXISTS ai_api_keys (
        tenant_id TEXT PRIMARY KEY,
        encrypted_key TEXT NOT NULL,
        provider TEXT NOT NULL DEFAULT 'openai',
        usage_count INTEGER NOT NULL DEFAULT 0,
        tokens_used INTEGER NOT NULL DEFAULT 0,
        last_used_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
]

# Create database connection
database = databases.Database(settings.database_url)


async def get_database() -> databases.Database:
    """Get database connection."""
    return database


async def init_schema(db: databases.Database) -> None:
    for statement in SCHEMA_SQL:
        await db.execute(statement)


async def connect_db():
    """Connect to database on startup."""
    if not database.is_connected:
        await database.connect()
        await init_schema(database)


async def disconnect_db():
    """Disconnect from database on shutdown."""
    if database.is_connected:
        await database.disconnect()

import asyncpg
import logging
from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Global pool instance
db_pool = None

SCHEMA = """
CREATE TABLE IF NOT EXISTS hosts (
    id UUID PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL,
    password_hash TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS meetups (
    id UUID PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    date TIMESTAMPTZ NOT NULL,
    location TEXT NOT NULL,
    max_participants INTEGER NOT NULL CHECK (max_participants >= 2),
    max_waitlist INTEGER CHECK (max_waitlist >= 0),
    fee_display TEXT,
    host_name TEXT NOT NULL,
    host_phone TEXT NOT NULL,
    host_code TEXT NOT NULL,
    host_id UUID REFERENCES hosts(id),
    status TEXT NOT NULL DEFAULT 'open',
    confirmation_sent BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS participants (
    id UUID PRIMARY KEY,
    meetup_id UUID NOT NULL REFERENCES meetups(id),
    name TEXT NOT NULL,
    phone TEXT NOT NULL,
    token TEXT NOT NULL UNIQUE,
    status TEXT NOT NULL,
    is_waitlisted BOOLEAN NOT NULL DEFAULT FALSE,
    registered_at TIMESTAMPTZ NOT NULL,
    confirmed_at TIMESTAMPTZ,
    checked_in_at TIMESTAMPTZ
);

DROP INDEX IF EXISTS participants_active_phone;

CREATE UNIQUE INDEX IF NOT EXISTS participants_active_phone_normalized
    ON participants (meetup_id, (regexp_replace(phone, '[[:space:]-]', '', 'g')))
    WHERE status <> 'cancelled';

CREATE INDEX IF NOT EXISTS participants_queue
    ON participants (meetup_id, status, registered_at, id);

CREATE TABLE IF NOT EXISTS reminders (
    id UUID PRIMARY KEY,
    meetup_id UUID NOT NULL REFERENCES meetups(id),
    type TEXT NOT NULL,
    sent_at TIMESTAMPTZ,
    sent_by TEXT,
    note TEXT,
    UNIQUE (meetup_id, type)
);
"""


async def get_db_pool():
    """Create asyncpg connection pool"""
    return await asyncpg.create_pool(
        host=settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_NAME,
        user=settings.DB_USER,
        password=settings.DB_PASSWORD,
        min_size=settings.DB_POOL_MIN,
        max_size=settings.DB_POOL_MAX,
        command_timeout=60
    )


async def init_db():
    """Initialize database pool and schema on startup"""
    global db_pool
    logger.info("=== INITIALIZING DATABASE POOL ===")
    try:
        db_pool = await get_db_pool()
        async with db_pool.acquire() as conn:
            await conn.execute(SCHEMA)
        logger.info(f"=== DATABASE POOL INITIALIZED: {db_pool} ===")
    except Exception as e:
        logger.error(f"=== DATABASE POOL INITIALIZATION FAILED: {e} ===")
        raise


async def close_db():
    """Close database pool on shutdown"""
    global db_pool
    if db_pool:
        await db_pool.close()
        db_pool = None


def get_pool():
    """Get database pool for dependency injection"""
    if db_pool is None:
        raise RuntimeError("Database pool not initialized")
    return db_pool

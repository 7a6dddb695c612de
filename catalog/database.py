from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from urllib.parse import urlparse, parse_qs, urlunparse
from dotenv import load_dotenv
from catalog.config import settings
import os

load_dotenv()


def clean_asyncpg_url(url: str) -> tuple[str, dict]:
    """
    Clean database URL for asyncpg compatibility.
    Converts postgresql:// to postgresql+asyncpg://, removes ALL query params
    (asyncpg doesn't support psycopg2-style params), and converts sslmode
    to connect_args format.
    Returns (cleaned_url, connect_args_dict)
    """
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    if not url.startswith("postgresql+asyncpg://"):
        return url, {}

    parsed = urlparse(url)
    query_params = parse_qs(parsed.query)

    connect_args = {}
    if 'sslmode' in query_params:
        sslmode = query_params.pop('sslmode')[0]
        # asyncpg takes ssl=True/False instead of a libpq sslmode
        connect_args['ssl'] = sslmode != 'disable'
    else:
        hostname = parsed.hostname or ''
        if ('sql.googleapis.com' in hostname or '.amazonaws.com' in hostname or
                os.getenv('DYNO') or os.getenv('GOOGLE_CLOUD_PROJECT')):
            connect_args['ssl'] = True

    cleaned_url = urlunparse(parsed._replace(query=''))
    return cleaned_url, connect_args


def build_engine(url: str, **engine_kwargs):
    """Create the async engine (connection pool) for a database URL."""
    cleaned_url, connect_args = clean_asyncpg_url(url)
    if cleaned_url.startswith("postgresql+asyncpg://"):
        engine_kwargs.setdefault("pool_size", settings.db_pool_size)
        engine_kwargs.setdefault("max_overflow", settings.db_max_overflow)
    return create_async_engine(
        cleaned_url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
        **engine_kwargs,
    )


def build_session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Async engine for FastAPI
async_engine = build_engine(settings.database_url)

AsyncSessionLocal = build_session_factory(async_engine)

# Base class for models
Base = declarative_base()


# Dependency for FastAPI to get async database session
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

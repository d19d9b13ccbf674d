import os
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from .config import get_settings

settings = get_settings()

_db_url = settings.database_url
if os.environ.get("DATABASE_URL"):
    _db_url = os.environ["DATABASE_URL"]

try:
    async_engine = create_async_engine(
        _db_url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=10,
    )

    AsyncSessionLocal = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
except Exception:
    # Driver missing or URL malformed: the service runs without an audit trail
    async_engine = None
    AsyncSessionLocal = None

Base = declarative_base()


async def get_db() -> AsyncSession:
    """Dependency for getting async database sessions."""
    if AsyncSessionLocal is None:
        raise RuntimeError("Database not available")
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Initialize database tables."""
    if async_engine is None:
        return
    from . import models  # noqa: F401  register tables on Base.metadata
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

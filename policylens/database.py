"""
Single async engine and session factory for policylens.

Only the SQL-backed job store uses it. Sessions are opened per store call and
closed right after, so connections go back to the pool between jobs.
"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from policylens.config import DATABASE_URL

# Connection timeout (seconds) so a missing DB fails fast instead of hanging the job
_connect_args = {"timeout": 15} if DATABASE_URL and "asyncpg" in DATABASE_URL else {}
engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    connect_args=_connect_args,
    pool_size=1,
    max_overflow=2,
    pool_pre_ping=True,
    pool_recycle=300,
)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


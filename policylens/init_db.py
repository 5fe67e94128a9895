import asyncio

from sqlalchemy.ext.asyncio import create_async_engine
from policylens.database import Base
from policylens.config import DATABASE_URL
import policylens.models  # noqa: F401  register PolicyJob with Base.metadata


async def init_db():
    engine = create_async_engine(DATABASE_URL, echo=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("Database tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())

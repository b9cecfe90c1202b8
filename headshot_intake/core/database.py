from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from headshot_intake.core.config import settings

Base = declarative_base()

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)

# records are handed back to the routers after commit
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session


async def init_models() -> None:
    # imported for its side effect of registering the table
    from headshot_intake.models import imageRecord  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

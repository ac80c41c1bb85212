from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings
from app.models import Base  # noqa: F401 - registers every table on Base.metadata

engine = create_async_engine(settings.database_url, echo=False)

# Services run guarded bulk UPDATEs and re-read with populate_existing, so
# objects must stay usable after commit
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session

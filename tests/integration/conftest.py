"""Database fixtures for integration tests."""

from __future__ import annotations

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from specrecon.config import DBConfig
from specrecon.db.connection import create_engine
from specrecon.db.models import Base


@pytest_asyncio.fixture()
async def db_session() -> AsyncSession:
    """Create in-memory database for testing (foreign keys enforced)."""
    engine = create_engine(DBConfig(url="sqlite+aiosqlite:///:memory:"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()

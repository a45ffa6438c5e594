"""
Pytest configuration and fixtures for sitecms tests
"""

import os
import sys
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH120
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))  # noqa: PTH100, PTH120

from sitecms.database import Base  # noqa: E402
from sitecms.models.category import Category  # noqa: E402
from sitecms.utils.file_store import LocalFileStore  # noqa: E402
from utils.mock_utils import create_test_category  # noqa: E402
from utils.mocks import StubTranslator  # noqa: E402

# Test database URL (SQLite in-memory for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

# Same session behaviour as the application session factory
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
async def setup_test_database():
    """Create a fresh database for each test function that needs it"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
async def test_db(setup_test_database) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session backed by a fresh schema"""
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
def translator() -> StubTranslator:
    return StubTranslator()


@pytest.fixture
def file_store(tmp_path) -> LocalFileStore:
    """File store rooted in a temporary directory"""
    return LocalFileStore(tmp_path)


@pytest.fixture
async def test_category(test_db: AsyncSession) -> Category:
    """Category 'Berita' with English and Chinese names"""
    return await create_test_category(test_db, "Berita", {"en": "News", "zh": "新闻"})

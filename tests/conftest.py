"""
Pytest configuration and fixtures for settingstore tests.
"""

import pytest
from cryptography.fernet import Fernet
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from settingstore.config import Settings, get_settings
from settingstore.models import Base
from settingstore.services.cache import MemoryCacheStore, SettingsCache, get_cache_store
from settingstore.services.settings_manager import SettingsManager


@pytest.fixture(autouse=True)
def clear_cached_factories():
    """Reset lru_cache'd factories so no state leaks between tests."""
    get_settings.cache_clear()
    get_cache_store.cache_clear()
    yield
    get_settings.cache_clear()
    get_cache_store.cache_clear()


@pytest.fixture
def engine():
    """In-memory SQLite engine with the schema created.

    StaticPool keeps the single connection alive so every session (and the
    TestClient's worker thread) sees the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Session:
    """Provide a database session for tests."""
    session_factory = sessionmaker(bind=engine, autoflush=False)
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def encryption_key():
    """Generate a valid Fernet key for testing."""
    return Fernet.generate_key().decode()


@pytest.fixture
def config(encryption_key):
    """Application settings independent of the environment and .env file."""
    return Settings(
        _env_file=None,
        encryption_key=encryption_key,
        cache_enabled=True,
        cache_driver="memory",
        locales=["en", "de", "fr"],
        default_locale="en",
    )


@pytest.fixture
def cache_store():
    """Fresh in-memory cache backend."""
    return MemoryCacheStore()


@pytest.fixture
def cache(config, cache_store):
    return SettingsCache.from_config(config, store=cache_store)


@pytest.fixture
def manager(db_session, config, cache):
    """SettingsManager wired to the test database and cache."""
    return SettingsManager(db_session, config=config, cache=cache)


@pytest.fixture
def user_manager(manager):
    """Settings manager for user 1."""
    return manager.user(1)

import pathlib

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from math_racer.load_secrets import db_name, host, password, port, user

SQLITE_PATH = pathlib.Path(__file__).parents[1] / "math_racer.sqlite3"


def database_url() -> str:
    """PostgreSQL when the server is configured, a local SQLite file otherwise."""
    if host:
        return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}"
    return f"sqlite+aiosqlite:///{SQLITE_PATH}"


def create_engine(url: str | None = None) -> AsyncEngine:
    url = url or database_url()
    if url.startswith("postgresql"):
        return create_async_engine(url, pool_size=20, max_overflow=20)
    return create_async_engine(url=url, echo=False)


engine = create_engine()

# Centralized session factory to avoid creating it in router modules.
Session = async_sessionmaker(
    autocommit=False,
    class_=AsyncSession,
    autoflush=True,
    bind=engine,
)

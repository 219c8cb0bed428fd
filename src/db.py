import pathlib

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.load_secrets import db_backend, db_name, host, password, port, user

SQLITE_FILE = pathlib.Path(__file__).parent / "user_stats.sqlite3"


def database_url(backend: str = db_backend) -> str:
    if backend == "sqlite":
        return f"sqlite+aiosqlite:///{SQLITE_FILE}"
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}"


if db_backend == "sqlite":
    engine = create_async_engine(url=database_url(), echo=False)
else:
    engine = create_async_engine(database_url(), pool_size=20, max_overflow=20)

# Centralized session factory to avoid creating it in router modules.
Session = async_sessionmaker(
    autocommit=False,
    class_=AsyncSession,
    autoflush=True,
    expire_on_commit=False,
    bind=engine,
)

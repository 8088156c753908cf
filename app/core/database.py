from dataclasses import dataclass

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings

Base = declarative_base()


def get_database_url(db_url: str | None = None) -> str:
    db_url = db_url or settings.DATABASE_URL
    if "postgresql" in db_url and "ssl" not in db_url and settings.ENVIRONMENT != "development":
        separator = "&" if "?" in db_url else "?"
        return f"{db_url}{separator}ssl=require"
    return db_url


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    """Start every SQLite transaction with BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, so two transactions can both
    read "no overlap" before either inserts. Taking the write lock up front
    serializes the check and the insert across connections.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@dataclass
class Database:
    """Engine and session factory for the lifetime of one application."""

    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]

    async def create_all(self) -> None:
        # Import models so they register on Base.metadata
        from app.models import booking, customer, inspection, payment, rate_plan, vehicle  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


def create_database(db_url: str | None = None, echo: bool | None = None) -> Database:
    url = get_database_url(db_url)
    engine = create_async_engine(url, echo=settings.SQL_ECHO if echo is None else echo)
    if url.startswith("sqlite"):
        _serialize_sqlite_writers(engine)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    return Database(engine=engine, session_maker=session_maker)

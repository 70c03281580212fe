from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.ext.asyncio.session import AsyncSession
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # the driver must not issue its own BEGIN; see _begin_immediate
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn):
    # reads inside a transaction run under the write lock
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(db_url: str) -> AsyncEngine:
    engine = create_async_engine(db_url, future=True, echo=False)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
        event.listen(engine.sync_engine, "begin", _begin_immediate)
    return engine


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

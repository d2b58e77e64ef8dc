import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _is_memory_sqlite(url) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the inventory store.

    SQLite file databases run journaled (WAL) with foreign keys enforced, and
    every transaction starts with BEGIN IMMEDIATE so that a check-then-insert
    sequence holds the single write lock for its whole duration.
    In-memory SQLite shares one connection (StaticPool) for tests.
    """
    # Some hosts still hand out postgres:// URLs
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, echo=echo, pool_pre_ping=True)

    if _is_memory_sqlite(url):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _memory_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    engine = create_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _file_pragmas(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself (see _begin_immediate)
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = build_engine(settings.database_url, echo=False)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine = None):
    """Create all tables in the database"""
    # Register every model on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ready")

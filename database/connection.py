"""
Database connection management for The Darji back office.
Handles SQLAlchemy engine creation, session management, and connection verification.
"""

import os
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool, StaticPool

logger = logging.getLogger(__name__)

# SQLAlchemy Base for model declarations
Base = declarative_base()

# Engine and SessionLocal are bound by configure_database()
engine = None
SessionLocal = None
DATABASE_URL = None


def normalize_url(url):
    """Handle Render's postgres:// vs postgresql:// URL format."""
    if url and url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    return url


def _enable_sqlite_savepoints(eng):
    # pysqlite issues its own BEGIN; take it over so SAVEPOINT works
    @event.listens_for(eng, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(eng, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN')


def create_db_engine(url, **engine_options):
    """Create an engine suited to the backend named by ``url``."""
    url = normalize_url(url)

    if url.startswith('sqlite'):
        kwargs = {'connect_args': {'check_same_thread': False}, 'echo': False}
        if ':memory:' in url or url in ('sqlite://', 'sqlite:///'):
            kwargs['poolclass'] = StaticPool
        eng = create_engine(url, **kwargs)
        _enable_sqlite_savepoints(eng)
        return eng

    options = {
        'pool_size': 5,
        'max_overflow': 10,
        'pool_pre_ping': True,  # Verify connections before using
        'pool_recycle': 300,    # Recycle connections after 5 minutes
    }
    options.update(engine_options)
    return create_engine(url, poolclass=QueuePool, echo=False, **options)


def configure_database(url=None, **engine_options):
    """
    Bind the module-level engine and session factory.

    Args:
        url: Database URL; defaults to the DATABASE_URL environment variable
        engine_options: Extra create_engine options for server databases

    Returns:
        The configured engine
    """
    global engine, SessionLocal, DATABASE_URL

    url = normalize_url(url or os.environ.get('DATABASE_URL'))
    if not url:
        raise RuntimeError(
            "DATABASE_URL not configured. Please set the DATABASE_URL environment variable."
        )

    if engine is not None:
        engine.dispose()

    try:
        engine = create_db_engine(url, **engine_options)
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}")
        raise RuntimeError(f"Failed to connect to database: {e}")

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    DATABASE_URL = url
    logger.info(f"Database engine created for {engine.url.get_backend_name()}")
    return engine


def get_engine():
    """Get the configured engine, configuring from the environment if needed."""
    if engine is None:
        configure_database()
    return engine


def get_session_factory():
    """Get the session factory."""
    if SessionLocal is None:
        configure_database()
    return SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for getting a database session.
    Commits on success, rolls back on error and always closes.

    Example:
        with get_db_session() as session:
            clients = session.query(Client).all()
    """
    session_factory = get_session_factory()
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection():
    """
    Verify that the database connection is working.
    Returns True if connection is successful, raises exception otherwise.
    """
    try:
        eng = get_engine()
        with eng.connect() as conn:
            result = conn.execute(text("SELECT 1"))
            result.fetchone()
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise RuntimeError(f"Cannot connect to database: {e}")


def init_db():
    """
    Initialize the database by creating all tables.
    Safe to call repeatedly; existing tables are left alone.
    """
    # Import models to ensure they're registered with Base
    from database import models  # noqa: F401

    eng = get_engine()
    Base.metadata.create_all(bind=eng)
    logger.info("Database tables created/verified")


def drop_db():
    """Drop every table (used by tests and restore)."""
    from database import models  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())


def is_db_configured():
    """Check if a database URL is configured (without failing)."""
    return bool(DATABASE_URL or os.environ.get('DATABASE_URL'))

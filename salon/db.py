"""
salon/db.py

SQLAlchemy engine and per-request sessions for StylePreview.

PostgreSQL in production (DATABASE_URL), SQLite for local runs and tests.
One scoped session per thread; the Flask teardown hook discards it after
every request, so a request never sees another request's pending state.

Usage:
    from salon.db import get_db

    db = get_db()
    salon = db.get(Salon, salon_id)

Version History:
    2025-11-04: Initial implementation
    2025-11-12: SQLite support (local dev and test runs)
    2025-11-19: Foreign keys enforced on SQLite
"""

import os

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, scoped_session, Session
from sqlalchemy.pool import QueuePool


DEFAULT_DEV_URL = 'sqlite:///stylepreview_dev.db'


def get_database_url() -> str:
    """
    DATABASE_URL, else DEV_DATABASE_URL, else a local SQLite file.

    Heroku-style 'postgres://' URLs are rewritten for SQLAlchemy 2.
    """
    url = os.environ.get('DATABASE_URL') or os.environ.get('DEV_DATABASE_URL')

    if not url:
        print(f"[DB] WARNING: no DATABASE_URL, using {DEFAULT_DEV_URL}")
        url = DEFAULT_DEV_URL

    if url.startswith('postgres://'):
        url = 'postgresql://' + url[len('postgres://'):]

    return url


def is_sqlite(url: str) -> bool:
    return url.startswith('sqlite')


# =============================================================================
# ENGINE
# =============================================================================

# PostgreSQL pool; a handful of gunicorn workers share one database
POSTGRES_ENGINE_OPTIONS = {
    'poolclass': QueuePool,
    'pool_size': 5,
    'max_overflow': 10,
    'pool_timeout': 30,
    'pool_recycle': 1800,
    'pool_pre_ping': True,
}

# Flask's dev server and the test client may touch the file from several threads
SQLITE_ENGINE_OPTIONS = {
    'connect_args': {'check_same_thread': False},
}

_engine = None
_sessions = None


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


def get_engine():
    """Engine for the configured URL, created on first use."""
    global _engine

    if _engine is not None:
        return _engine

    url = get_database_url()

    if is_sqlite(url):
        _engine = create_engine(url, **SQLITE_ENGINE_OPTIONS)
        # ON DELETE CASCADE / SET NULL are ignored by SQLite unless switched on
        event.listen(_engine, 'connect', _enable_sqlite_foreign_keys)
    else:
        _engine = create_engine(url, **POSTGRES_ENGINE_OPTIONS)

    print(f"[DB] Engine created ({_engine.dialect.name})")
    return _engine


def get_scoped_session():
    """Thread-local session registry (expire_on_commit off for JSON rendering)."""
    global _sessions

    if _sessions is None:
        factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
        _sessions = scoped_session(factory)

    return _sessions


def get_db() -> Session:
    """Session for the current request/thread."""
    return get_scoped_session()


# =============================================================================
# SCHEMA AND FLASK WIRING
# =============================================================================

def create_all_tables():
    from salon.models import Base
    Base.metadata.create_all(get_engine())
    print("[DB] Tables ready")


def drop_all_tables():
    """Drop every table. Tests and local resets only."""
    from salon.models import Base
    get_scoped_session().remove()
    Base.metadata.drop_all(get_engine())
    print("[DB] Tables dropped")


def init_db(app=None):
    """
    Create missing tables and, for a Flask app, discard the request's
    session when its app context ends.
    """
    create_all_tables()

    if app is not None:
        @app.teardown_appcontext
        def remove_session(exception=None):
            get_scoped_session().remove()


def check_connection() -> bool:
    """True when a trivial query succeeds."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text('SELECT 1'))
    except Exception as e:
        print(f"[DB] Health check failed: {e}")
        return False
    return True

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from marketplace.core.config import settings
import os
import logging
from contextlib import contextmanager

logger = logging.getLogger(__name__)

# Execution option that asks for the database write lock at BEGIN time.
# Only SQLite needs it; server databases rely on SELECT ... FOR UPDATE.
BEGIN_IMMEDIATE = "begin_immediate"

if os.getenv("PYTEST_RUN") == "1":
    SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
else:
    SQLALCHEMY_DATABASE_URL = settings.SQLALCHEMY_DATABASE_URL

is_sqlite = SQLALCHEMY_DATABASE_URL.startswith("sqlite")

pool_kwargs = {
    # Avoid stale idle connections causing first-hit failures after inactivity
    "pool_pre_ping": True,
}
if is_sqlite:
    connect_args = {"check_same_thread": False, "timeout": 15}
else:
    connect_args = {}
    pool_kwargs.update({
        "pool_size": int(os.getenv("DB_POOL_SIZE") or 6),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW") or 6),
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE") or 300),
        # Statement/transaction timeouts are left to the driver; this only
        # bounds how long a request waits for a pooled connection.
        "pool_timeout": float(os.getenv("DB_POOL_TIMEOUT") or 5.0),
    })

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=connect_args,
    **pool_kwargs,
)


def configure_sqlite(target: Engine) -> None:
    """Apply pragmas and explicit transaction control to a SQLite engine.

    pysqlite issues its own deferred BEGIN, which only takes the write lock on
    the first INSERT/UPDATE. Disabling that and emitting BEGIN ourselves lets a
    connection opened with the ``begin_immediate`` execution option grab the
    write lock up front, serializing competing reservations the way
    ``FOR UPDATE`` does on Postgres.
    """

    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            # WAL improves read concurrency; NORMAL reduces fsync pressure.
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.execute("PRAGMA foreign_keys=ON;")
            # Back off rather than instantly failing on transient locks (ms)
            cursor.execute("PRAGMA busy_timeout=60000;")
        finally:
            cursor.close()

    @event.listens_for(target, "begin")
    def _do_begin(conn):  # noqa: ANN001
        if conn.get_execution_options().get(BEGIN_IMMEDIATE):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


if is_sqlite:
    configure_sqlite(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


# Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session():
    """Provide a short-lived SessionLocal with guaranteed close.

    Use where FastAPI Depends is unavailable (startup hooks, scripts).
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

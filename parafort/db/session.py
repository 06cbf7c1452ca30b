# parafort/db/session.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from parafort.core.config import get_settings

DATABASE_URL = get_settings().database_url


def make_engine(url: str, **engine_kwargs):
    """Create an engine; SQLite gets thread-sharing and FK enforcement."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    eng = create_engine(
        url,
        connect_args=connect_args,
        pool_pre_ping=True,  # safer reconnects
        future=True,
        **engine_kwargs,
    )
    if url.startswith("sqlite"):
        event.listen(eng, "connect", _sqlite_on_connect)
        event.listen(eng, "begin", _sqlite_on_begin)
    return eng


def _sqlite_on_connect(dbapi_connection, connection_record):
    # Enforce foreign keys; let SQLAlchemy own BEGIN so SAVEPOINTs behave
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


def _sqlite_on_begin(conn):
    conn.exec_driver_sql("BEGIN")


engine = make_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    future=True,
)

from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ..config import Settings, load_settings


def make_engine(
    database_url: Optional[str] = None,
    echo: Optional[bool] = None,
    *,
    settings: Optional[Settings] = None,
) -> Engine:
    """Create the engine for ``database_url`` (or the configured ``DB_URL``).

    Every connection attempt is bounded by ``settings.db_timeout_seconds`` so
    a locked or unreachable store fails instead of hanging the caller.
    """
    settings = settings or load_settings()
    url = database_url or settings.database_url
    timeout = settings.db_timeout_seconds

    kwargs: dict = {"echo": settings.echo_sql if echo is None else echo, "future": True}
    if url.startswith("sqlite"):
        # sqlite3 waits up to ``timeout`` seconds on a locked database
        kwargs["connect_args"] = {"timeout": timeout}
    else:
        kwargs["pool_timeout"] = timeout
        kwargs["pool_pre_ping"] = True

    engine = create_engine(url, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside it
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin_sqlite(conn):
            conn.exec_driver_sql("BEGIN")

    return engine


def get_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,  # Keep orders readable after the unit of work commits
        future=True,
    )

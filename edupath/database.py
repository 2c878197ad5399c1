# database.py
import logging
from typing import Generator
from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from edupath.config import build_sqlalchemy_db_url, settings


def build_connect_args(db_url: str) -> dict:
    timeout = int(settings.db_timeout_seconds)
    if db_url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout}
    if db_url.startswith("mysql+pymysql"):
        return {"connect_timeout": 5, "read_timeout": timeout, "write_timeout": timeout}
    return {}


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def mask_db_url(db_url: str) -> str:
    try:
        return str(make_url(db_url).set(password="***"))
    except Exception:
        return db_url


_db_url = build_sqlalchemy_db_url(settings)
engine = create_engine(_db_url, pool_pre_ping=True, future=True, connect_args=build_connect_args(_db_url))

if _db_url.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
        # SQLite leaves foreign keys off per connection; cascades depend on them.
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        # Built-in lower() only folds ASCII; catalog matching needs "LẬP TRÌNH" == "lập trình".
        dbapi_connection.create_function("lower", 1, _unicode_lower)


logging.getLogger("uvicorn.error").info("SQLAlchemy ORM db_url=%s", mask_db_url(_db_url))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

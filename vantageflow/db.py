from collections.abc import Generator

from sqlalchemy import Engine
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm import Session

from vantageflow.settings import Settings


class Base(DeclarativeBase):
    pass


def get_database_url() -> str:
    settings = Settings()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not set")
    return settings.database_url


def build_engine(database_url: str) -> Engine:
    """Create an engine for the task store.

    SQLite connections are shared with the FastAPI threadpool, so the
    same-thread check is disabled for them.
    """

    connect_args: dict[str, object] = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(get_database_url())
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

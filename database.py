import os

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from errors import StoreError

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./example.db")

Base = declarative_base()


def open_db(dsn: str = DATABASE_URL) -> Engine:
    """Build the pooled engine for ``dsn`` and check that it answers.

    The engine connects lazily, so a ``SELECT 1`` is issued here to surface
    a bad DSN or an unreachable store at startup instead of on the first
    request.
    """
    try:
        url = make_url(dsn)
    except ArgumentError as exc:
        raise StoreError(f"invalid DSN {dsn!r}") from exc

    connect_args = {}
    if url.get_backend_name() == "sqlite":
        # pooled connections are handed out to the server's worker threads
        connect_args["check_same_thread"] = False

    try:
        engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
    except (ArgumentError, ImportError) as exc:
        raise StoreError(f"cannot create engine for {url!r}") from exc

    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        engine.dispose()
        raise StoreError(f"cannot reach store at {url!r}") from exc
    return engine


def create_schema(engine: Engine) -> None:
    # models must be imported so the tasks table is registered on Base
    import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        raise StoreError("cannot create schema") from exc


def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

from pathlib import Path

import pytest
import structlog
from fastapi.testclient import TestClient

from database import create_schema, open_db
from main import build_application, create_app


@pytest.fixture()
def dsn(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'tasks.sqlite3'}"


@pytest.fixture()
def engine(dsn):
    """File-backed SQLite engine with the tasks table created.

    A file is used rather than ``:memory:`` so pooled connections opened from
    worker threads all see the same database.
    """
    engine = open_db(dsn)
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def application(engine):
    return build_application(engine, log=structlog.get_logger().bind(component="tests"))


@pytest.fixture()
def tasks(application):
    return application.tasks


@pytest.fixture()
def client(application):
    with TestClient(create_app(application)) as client:
        yield client

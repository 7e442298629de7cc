from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest
from sqlalchemy import BigInteger

from database import open_db
from errors import NotFound, RecordNotFound, StoreError, ValidationError
import models
from models import LATEST_LIMIT, MAX_TASK_ID, Task, TaskModel


def test_insert_then_get_returns_stored_fields(tasks):
    task_id = tasks.insert("Buy milk", "two litres", 7)

    assert task_id > 0
    task = tasks.get(task_id)
    assert isinstance(task, Task)
    assert task.id == task_id
    assert task.title == "Buy milk"
    assert task.description == "two litres"
    assert task.done == "false"
    assert task.created <= task.expires
    assert (task.expires - task.created).days == 7


def test_insert_with_zero_days_expires_at_creation(tasks):
    task = tasks.get(tasks.insert("Now", "", 0))
    assert task.created == task.expires


def test_get_missing_task_raises_not_found(tasks):
    with pytest.raises(RecordNotFound) as excinfo:
        tasks.get(42)

    assert isinstance(excinfo.value, NotFound)
    assert excinfo.value.task_id == 42


@pytest.mark.parametrize(
    "title, days",
    [("", 1), ("   ", 1), ("x" * 101, 1), ("ok", -1)],
)
def test_insert_rejects_invalid_arguments(tasks, title, days):
    with pytest.raises(ValidationError):
        tasks.insert(title, "", days)

    assert tasks.latest() == []


def test_latest_on_empty_store_is_empty(tasks):
    assert tasks.latest() == []


def test_latest_returns_newest_ten_in_descending_order(tasks):
    ids = [tasks.insert(f"task {n}", "", 1) for n in range(LATEST_LIMIT + 3)]

    latest = tasks.latest()

    assert len(latest) == LATEST_LIMIT
    assert [t.id for t in latest] == sorted(ids, reverse=True)[:LATEST_LIMIT]
    keys = [(t.created, t.id) for t in latest]
    assert keys == sorted(keys, reverse=True)


def test_latest_breaks_created_ties_by_id(tasks, monkeypatch):
    monkeypatch.setattr(models, "utcnow", lambda: datetime(2024, 3, 1, 12, 0, 0))
    ids = [tasks.insert(f"same instant {n}", "", 1) for n in range(LATEST_LIMIT + 2)]

    latest = tasks.latest()

    assert {t.created for t in latest} == {datetime(2024, 3, 1, 12, 0, 0)}
    assert [t.id for t in latest] == sorted(ids, reverse=True)[:LATEST_LIMIT]


def test_latest_with_fewer_rows_returns_them_all(tasks):
    first = tasks.insert("first", "", 1)
    second = tasks.insert("second", "", 1)

    assert [t.id for t in tasks.latest()] == [second, first]


def test_concurrent_inserts_get_distinct_positive_ids(tasks):
    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(lambda n: tasks.insert(f"task {n}", "", 1), range(40)))

    assert len(set(ids)) == 40
    assert all(task_id > 0 for task_id in ids)


def test_store_failures_are_raised_as_store_error(dsn):
    # no schema created, so every statement fails
    engine = open_db(dsn)
    try:
        model = TaskModel(engine)
        with pytest.raises(StoreError):
            model.insert("title", "", 1)
        with pytest.raises(StoreError):
            model.get(1)
        with pytest.raises(StoreError):
            model.latest()
    finally:
        engine.dispose()


def test_open_db_rejects_unreachable_store(tmp_path):
    with pytest.raises(StoreError):
        open_db(f"sqlite:///{tmp_path / 'missing' / 'dir' / 'tasks.sqlite3'}")


def test_open_db_rejects_malformed_dsn():
    with pytest.raises(StoreError):
        open_db("not a dsn")


def test_id_column_is_64_bit():
    assert isinstance(Task.__table__.c.id.type, BigInteger)


def test_get_at_largest_id_is_not_found(tasks):
    tasks.insert("only", "", 1)

    with pytest.raises(RecordNotFound):
        tasks.get(MAX_TASK_ID)

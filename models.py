from datetime import datetime, timedelta, timezone

from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from database import Base, session_factory
from errors import RecordNotFound, StoreError, ValidationError

LATEST_LIMIT = 10
TITLE_MAX_LENGTH = 100
# largest id the 64-bit primary key can hold
MAX_TASK_ID = 2**63 - 1


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the tasks table."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Task(Base):
    __tablename__ = "tasks"

    # SQLite only autoincrements an INTEGER primary key, which is 64-bit there
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=False, default="")
    done = Column(String(5), nullable=False, default="false")
    created = Column(DateTime, nullable=False, index=True)
    expires = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Task(id={self.id}, title='{self.title}', expires={self.expires})>"


class TaskModel:
    """Data access for tasks over a pooled engine.

    Every call checks out its own session, so a single ``TaskModel`` can be
    shared by concurrent requests. Returned ``Task`` objects are detached and
    fully loaded. Failures are raised as ``StoreError`` without retrying.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.Session = session_factory(engine)

    def insert(self, title: str, description: str, expires_in_days: int) -> int:
        if not title or not title.strip():
            raise ValidationError("title must not be blank")
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError(f"title must be at most {TITLE_MAX_LENGTH} characters")
        if expires_in_days < 0:
            raise ValidationError("expires_in_days must not be negative")

        created = utcnow()
        task = Task(
            title=title,
            description=description or "",
            done="false",
            created=created,
            expires=created + timedelta(days=expires_in_days),
        )
        try:
            with self.Session() as session:
                session.add(task)
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreError("insert into tasks failed") from exc
        return task.id

    def get(self, task_id: int) -> Task:
        try:
            with self.Session() as session:
                task = session.get(Task, task_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"select of task {task_id} failed") from exc
        if task is None:
            raise RecordNotFound(task_id)
        return task

    def latest(self) -> list:
        """Return up to ``LATEST_LIMIT`` tasks, newest first."""
        query = (
            select(Task)
            .order_by(Task.created.desc(), Task.id.desc())
            .limit(LATEST_LIMIT)
        )
        try:
            with self.Session() as session:
                return list(session.scalars(query))
        except SQLAlchemyError as exc:
            raise StoreError("select of latest tasks failed") from exc

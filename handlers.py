import re
from typing import Optional

from fastapi import Depends, Form, Query, Request, status
from fastapi.responses import PlainTextResponse
from jinja2 import TemplateError

from context import Application, get_application
from errors import MethodNotAllowed, NotFound, ServerError, ValidationError
from models import MAX_TASK_ID

DEFAULT_TITLE = "Untitled task"
DEFAULT_EXPIRES_DAYS = 7
MAX_EXPIRES_DAYS = 365
TASK_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


def render(app: Application, request: Request, name: str, context: dict):
    try:
        return app.templates.TemplateResponse(request, name, context)
    except TemplateError as exc:
        raise ServerError(f"rendering {name} failed") from exc


def home(request: Request, app: Application = Depends(get_application)):
    if request.url.path != "/":
        raise NotFound()

    tasks = app.tasks.latest()
    return render(app, request, "pages/home.html", {"tasks": tasks})


def snippet_view(
    request: Request,
    raw_id: Optional[str] = Query(None, alias="id"),
    app: Application = Depends(get_application),
):
    # a malformed id is reported exactly like a missing task
    if raw_id is None or not TASK_ID_PATTERN.fullmatch(raw_id):
        raise NotFound()
    task_id = int(raw_id)
    if not 1 <= task_id <= MAX_TASK_ID:
        raise NotFound()

    task = app.tasks.get(task_id)
    return render(app, request, "pages/view.html", {"task": task})


def snippet_create(
    request: Request,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    expires: Optional[str] = Form(None),
    app: Application = Depends(get_application),
):
    if request.method != "POST":
        raise MethodNotAllowed(request.method, {"POST"})

    if title is None:
        title = DEFAULT_TITLE
    if not title.strip():
        raise ValidationError("title must not be blank")
    expires_in_days = parse_expires(expires)

    task_id = app.tasks.insert(title.strip(), description or "", expires_in_days)
    app.log.info("task created", task_id=task_id, expires_in_days=expires_in_days)
    return PlainTextResponse(
        f"Created task {task_id}",
        status_code=status.HTTP_201_CREATED,
        headers={"Location": f"/snippet/view?id={task_id}"},
    )


def parse_expires(value: Optional[str]) -> int:
    if value is None:
        return DEFAULT_EXPIRES_DAYS
    try:
        days = int(value)
    except ValueError:
        raise ValidationError("expires must be a whole number of days")
    if not 1 <= days <= MAX_EXPIRES_DAYS:
        raise ValidationError(f"expires must be between 1 and {MAX_EXPIRES_DAYS} days")
    return days

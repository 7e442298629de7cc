from fastapi import Request
from fastapi.templating import Jinja2Templates
from jinja2 import TemplateError

from errors import ServerError
from models import TaskModel

PAGES = ("pages/home.html", "pages/view.html")


class Application:
    """Dependencies shared by every request, built once at startup."""

    def __init__(self, log, tasks: TaskModel, templates: Jinja2Templates):
        self.log = log
        self.tasks = tasks
        self.templates = templates


def load_templates(directory) -> Jinja2Templates:
    """Parse every template under ``directory`` up front.

    Layouts and partials are only pulled in by ``extends``/``include`` at
    render time, so they are parsed here as well; a syntax error anywhere,
    or a missing page, fails at startup.
    """
    templates = Jinja2Templates(directory=str(directory))
    names = set(templates.env.list_templates()) | set(PAGES)
    for name in sorted(names):
        try:
            templates.get_template(name)
        except TemplateError as exc:
            raise ServerError(f"cannot load template {name}") from exc
    return templates


# Dependency to get the application context
def get_application(request: Request) -> Application:
    return request.app.state.application

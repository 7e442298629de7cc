import argparse
import os
import sys
from pathlib import Path

import uvicorn
from fastapi import FastAPI

import routes
from context import Application, load_templates
from database import DATABASE_URL, create_schema, open_db
from errors import TaskAppError
from logging_setup import configure_logging, get_logger
from models import TaskModel

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
DEFAULT_ADDR = ":4000"


def create_app(application: Application) -> FastAPI:
    app = FastAPI(title="Tasks", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.application = application
    routes.install(app)
    return app


def build_application(engine, log=None, template_dir=TEMPLATE_DIR) -> Application:
    return Application(
        log=log or get_logger("tasks"),
        tasks=TaskModel(engine),
        templates=load_templates(template_dir),
    )


def parse_addr(value):
    """Split a ``host:port`` address; an empty host binds every interface."""
    host, sep, port = value.rpartition(":")
    if not sep or not port.isdigit() or not 0 < int(port) < 65536:
        raise argparse.ArgumentTypeError(f"invalid address {value!r}, expected host:port")
    return host or "0.0.0.0", int(port)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Serve the tasks web application.")
    parser.add_argument(
        "--addr",
        type=parse_addr,
        default=os.getenv("TASKS_ADDR", DEFAULT_ADDR),
        help="HTTP network address (default %(default)s)",
    )
    parser.add_argument(
        "--dsn",
        default=DATABASE_URL,
        help="SQLAlchemy data source name (default %(default)s)",
    )
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    parser.add_argument(
        "--log-format",
        choices=("console", "json"),
        default=os.getenv("LOG_FORMAT", "console"),
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.log_level, args.log_format)
    log = get_logger("tasks")

    try:
        engine = open_db(args.dsn)
    except TaskAppError as exc:
        log.error("cannot open database", exc_info=exc)
        sys.exit(1)

    try:
        create_schema(engine)
        app = create_app(build_application(engine, log))
    except TaskAppError as exc:
        log.error("startup failed", exc_info=exc)
        engine.dispose()
        sys.exit(1)

    host, port = args.addr
    log.info("starting server", host=host, port=port)
    try:
        uvicorn.run(app, host=host, port=port, log_config=None)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()

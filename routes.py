"""Request dispatch for the task service.

The route table is fixed and matched on the exact path. ``resolve`` picks
the route for a request or raises ``NotFound`` / ``MethodNotAllowed``; the
dispatch middleware runs it in front of FastAPI's own router so every
request outside the table is answered the same way, and the exception
handlers turn the error taxonomy into plain-text responses.
"""

from dataclasses import dataclass
from typing import Callable

from fastapi import FastAPI, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse

import handlers
from errors import (
    MethodNotAllowed,
    NotFound,
    ServerError,
    StoreError,
    TaskAppError,
    ValidationError,
)


@dataclass(frozen=True)
class Route:
    path: str
    methods: frozenset
    endpoint: Callable
    response_class: type = HTMLResponse


ROUTES = (
    Route("/", frozenset({"GET"}), handlers.home),
    Route("/snippet/view", frozenset({"GET"}), handlers.snippet_view),
    Route("/snippet/create", frozenset({"POST"}), handlers.snippet_create, PlainTextResponse),
)


def resolve(method: str, path: str, routes=ROUTES) -> Route:
    """Return the route serving ``method`` on ``path``.

    Raises ``NotFound`` when no route has this path and ``MethodNotAllowed``
    (carrying every method the path accepts) when the path is known but the
    method is not. Has no side effects.
    """
    method = method.upper()
    allowed = set()
    for route in routes:
        if route.path != path:
            continue
        if method in route.methods:
            return route
        allowed |= route.methods
    if allowed:
        raise MethodNotAllowed(method, allowed)
    raise NotFound(f"no route for {path}")


def error_response(exc: TaskAppError) -> PlainTextResponse:
    if isinstance(exc, NotFound):
        return PlainTextResponse("Not Found", status_code=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, MethodNotAllowed):
        return PlainTextResponse(
            "Method Not Allowed",
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            headers={"Allow": exc.allow_header},
        )
    if isinstance(exc, ValidationError):
        return PlainTextResponse(f"Bad Request: {exc}", status_code=status.HTTP_400_BAD_REQUEST)
    return server_error_response()


def server_error_response() -> PlainTextResponse:
    return PlainTextResponse(
        "Internal Server Error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


async def app_error_handler(request: Request, exc: TaskAppError):
    if isinstance(exc, (StoreError, ServerError)):
        log = request.app.state.application.log
        log.error(
            "request failed",
            method=request.method,
            path=request.url.path,
            exc_info=exc,
        )
    return error_response(exc)


async def generic_exception_handler(request: Request, exc: Exception):
    log = request.app.state.application.log
    log.error("unexpected error", method=request.method, path=request.url.path, exc_info=exc)
    return server_error_response()


def install(app: FastAPI, routes=ROUTES) -> None:
    """Register the route table, the dispatch middleware and the error handlers on ``app``."""
    for route in routes:
        app.add_api_route(
            route.path,
            route.endpoint,
            methods=sorted(route.methods),
            response_class=route.response_class,
        )

    @app.middleware("http")
    async def dispatch(request: Request, call_next):
        log = request.app.state.application.log
        log.info("request", method=request.method, path=request.url.path)
        try:
            resolve(request.method, request.url.path, routes)
        except (NotFound, MethodNotAllowed) as exc:
            return error_response(exc)
        return await call_next(request)

    app.add_exception_handler(TaskAppError, app_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

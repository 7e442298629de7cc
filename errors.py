class TaskAppError(Exception):
    """Base class for every error the task service raises on purpose."""


class NotFound(TaskAppError):
    def __init__(self, message: str = "Not Found"):
        super().__init__(message)


class RecordNotFound(NotFound):
    """No task row matches the requested id."""

    def __init__(self, task_id: int):
        super().__init__(f"no task with id {task_id}")
        self.task_id = task_id


class MethodNotAllowed(TaskAppError):
    """The path exists but does not accept the request method.

    ``allowed`` is advertised back to the client in the ``Allow`` header.
    """

    def __init__(self, method: str, allowed):
        self.method = method
        self.allowed = frozenset(allowed)
        super().__init__(f"{method} not allowed, expected one of {self.allow_header}")

    @property
    def allow_header(self) -> str:
        return ", ".join(sorted(self.allowed))


class ValidationError(TaskAppError):
    pass


class StoreError(TaskAppError):
    """Connection, query or constraint failure in the persistence layer."""


class ServerError(TaskAppError):
    pass

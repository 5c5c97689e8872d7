# src/taskflow/core/errors.py

"""
Typed failures raised by the core.

Each kind is distinguishable by class and carries the status code a boundary
(HTTP, console) should report. The core never recovers from these locally.
"""

from __future__ import annotations

from typing import Any


class TaskFlowError(Exception):
    kind = "error"
    title = "Error"
    status_code = 500


class NotFoundError(TaskFlowError, LookupError):
    """Referenced project or task does not exist."""

    kind = "not_found"
    title = "Not found"
    status_code = 404


class InvalidTransitionError(TaskFlowError):
    """Requested status is not reachable from the current one."""

    kind = "invalid_transition"
    title = "Operation not permitted"
    status_code = 400

    def __init__(self, current: Any, requested: Any) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Status transition '{current} -> {requested}' is not allowed.")


class InvalidArgumentError(TaskFlowError, ValueError):
    """Unknown enum value or malformed payload."""

    kind = "invalid_argument"
    title = "Invalid argument"
    status_code = 400


def problem_details(exc: TaskFlowError) -> dict[str, Any]:
    """Render a failure as a problem+json style dict."""
    return {
        "type": f"https://httpstatuses.com/{exc.status_code}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": str(exc),
        "kind": exc.kind,
    }

# src/taskflow/tasks/transitions.py

"""
Status transition guard.

Todo -> InProgress | Cancelled
InProgress -> Done | Cancelled
Done, Cancelled -> (terminal)

The table is built once at import time and never mutated.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from ..core.errors import InvalidTransitionError
from .task_models import TaskStatus

INITIAL_STATUS = TaskStatus.TODO

ALLOWED_TRANSITIONS: Mapping[TaskStatus, frozenset[TaskStatus]] = MappingProxyType(
    {
        TaskStatus.TODO: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED}),
        TaskStatus.IN_PROGRESS: frozenset({TaskStatus.DONE, TaskStatus.CANCELLED}),
        TaskStatus.DONE: frozenset(),
        TaskStatus.CANCELLED: frozenset(),
    }
)


def allowed_next(current: TaskStatus) -> frozenset[TaskStatus]:
    return ALLOWED_TRANSITIONS.get(current, frozenset())


def is_terminal(status: TaskStatus) -> bool:
    return not allowed_next(status)


def check_transition(current: TaskStatus, requested: TaskStatus) -> bool:
    """
    Validate `current -> requested`.

    Returns False for a same-status re-assertion (nothing to write),
    True for a legal transition. Raises InvalidTransitionError otherwise.
    """
    if current == requested:
        return False
    if requested not in allowed_next(current):
        raise InvalidTransitionError(current, requested)
    return True

# src/taskflow/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any

from ..core.errors import InvalidArgumentError


class TaskStatus(StrEnum):
    """Stored (domain) task status. Every new task starts in TODO."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELLED = "cancelled"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        try:
            return cls(raw)
        except ValueError:
            raise InvalidArgumentError(f"Unknown status: {raw!r}") from None


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        try:
            return cls(raw)
        except ValueError:
            raise InvalidArgumentError(f"Unknown priority: {raw!r}") from None


class TaskStatusDto(StrEnum):
    """External representation of a task status."""

    TODO = "Todo"
    IN_PROGRESS = "InProgress"
    DONE = "Done"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, raw: str) -> TaskStatusDto:
        key = (raw or "").strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        raise InvalidArgumentError(f"Unknown status: {raw!r}")


class TaskPriorityDto(StrEnum):
    """External representation of a task priority."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @classmethod
    def parse(cls, raw: str) -> TaskPriorityDto:
        key = (raw or "").strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        raise InvalidArgumentError(f"Unknown priority: {raw!r}")


# Explicit, total mappings between the wire and domain variants.
_STATUS_TO_DOMAIN: dict[TaskStatusDto, TaskStatus] = {
    TaskStatusDto.TODO: TaskStatus.TODO,
    TaskStatusDto.IN_PROGRESS: TaskStatus.IN_PROGRESS,
    TaskStatusDto.DONE: TaskStatus.DONE,
    TaskStatusDto.CANCELLED: TaskStatus.CANCELLED,
}
_STATUS_TO_WIRE: dict[TaskStatus, TaskStatusDto] = {v: k for k, v in _STATUS_TO_DOMAIN.items()}

_PRIORITY_TO_DOMAIN: dict[TaskPriorityDto, TaskPriority] = {
    TaskPriorityDto.LOW: TaskPriority.LOW,
    TaskPriorityDto.MEDIUM: TaskPriority.MEDIUM,
    TaskPriorityDto.HIGH: TaskPriority.HIGH,
    TaskPriorityDto.CRITICAL: TaskPriority.CRITICAL,
}
_PRIORITY_TO_WIRE: dict[TaskPriority, TaskPriorityDto] = {
    v: k for k, v in _PRIORITY_TO_DOMAIN.items()
}


def status_to_domain(dto: Any) -> TaskStatus:
    try:
        return _STATUS_TO_DOMAIN[dto]
    except (KeyError, TypeError):
        raise InvalidArgumentError(f"Unknown status: {dto!r}") from None


def status_to_wire(status: Any) -> TaskStatusDto:
    try:
        return _STATUS_TO_WIRE[status]
    except (KeyError, TypeError):
        raise InvalidArgumentError(f"Unknown status: {status!r}") from None


def priority_to_domain(dto: Any) -> TaskPriority:
    try:
        return _PRIORITY_TO_DOMAIN[dto]
    except (KeyError, TypeError):
        raise InvalidArgumentError(f"Unknown priority: {dto!r}") from None


def priority_to_wire(priority: Any) -> TaskPriorityDto:
    try:
        return _PRIORITY_TO_WIRE[priority]
    except (KeyError, TypeError):
        raise InvalidArgumentError(f"Unknown priority: {priority!r}") from None


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def require_text(value: str | None, field_name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidArgumentError(f"{field_name} is required")
    return text


def clean_optional(value: str | None) -> str | None:
    return value.strip() if value is not None else None


# ---- stored entities ----


@dataclass(slots=True)
class Project:
    id: int
    name: str
    description: str | None
    created_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": _iso(self.created_at),
        }


@dataclass(slots=True)
class Task:
    id: int
    project_id: int
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    due_date: date | None
    created_at: float
    updated_at: float


@dataclass(frozen=True, slots=True)
class Tag:
    id: int
    name: str


@dataclass(slots=True)
class Comment:
    id: int
    task_id: int
    text: str
    created_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "text": self.text,
            "createdAt": _iso(self.created_at),
        }


# ---- projections ----


@dataclass(frozen=True, slots=True)
class TaskView:
    """Client-facing task: wire enums and alphabetically sorted tag names."""

    id: int
    project_id: int
    title: str
    description: str | None
    status: TaskStatusDto
    priority: TaskPriorityDto
    due_date: date | None
    created_at: float
    updated_at: float
    tags: list[str]

    @classmethod
    def from_task(cls, task: Task, tag_names: list[str]) -> TaskView:
        return cls(
            id=task.id,
            project_id=task.project_id,
            title=task.title,
            description=task.description,
            status=status_to_wire(task.status),
            priority=priority_to_wire(task.priority),
            due_date=task.due_date,
            created_at=task.created_at,
            updated_at=task.updated_at,
            tags=sorted(tag_names),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "tags": list(self.tags),
        }


@dataclass(frozen=True, slots=True)
class PagedResult:
    items: list[TaskView]
    total: int
    page: int
    page_size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self.items],
            "total": self.total,
            "page": self.page,
            "pageSize": self.page_size,
        }


# ---- request payloads ----


@dataclass(slots=True)
class CreateProjectRequest:
    name: str
    description: str | None = None

    def cleaned(self) -> CreateProjectRequest:
        return CreateProjectRequest(
            name=require_text(self.name, "name"),
            description=clean_optional(self.description),
        )


@dataclass(slots=True)
class CreateTaskRequest:
    project_id: int
    title: str
    description: str | None = None
    priority: TaskPriorityDto = TaskPriorityDto.MEDIUM
    due_date: date | None = None
    tags: list[str] = field(default_factory=list)
    # Accepted for payload compatibility; new tasks always start in Todo.
    status: TaskStatusDto | None = None


@dataclass(slots=True)
class UpdateTaskRequest:
    title: str
    description: str | None = None
    priority: TaskPriorityDto = TaskPriorityDto.MEDIUM
    due_date: date | None = None

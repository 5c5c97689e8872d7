# src/taskflow/tasks/task_service.py

"""
Task lifecycle operations.

Every operation takes a plain payload and returns a projection, or raises
NotFoundError / InvalidTransitionError / InvalidArgumentError. Nothing here
catches those: the boundary decides how to render them.
"""

from __future__ import annotations

import logging

from ..core.errors import InvalidTransitionError, NotFoundError
from ..core.ports import TaskRepo
from .task_models import (
    Comment,
    CreateTaskRequest,
    PagedResult,
    TaskStatusDto,
    TaskView,
    UpdateTaskRequest,
    clean_optional,
    priority_to_domain,
    require_text,
    status_to_domain,
)
from .task_query import TaskSearch
from .transitions import INITIAL_STATUS, check_transition

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, repo: TaskRepo) -> None:
        self._repo = repo

    def _view(self, task_id: int) -> TaskView:
        view = self._repo.get_task_view(task_id)
        if view is None:
            raise NotFoundError("Task not found.")
        return view

    def search(self, query: TaskSearch | None = None) -> PagedResult:
        q = (query or TaskSearch()).normalized()
        items, total = self._repo.search_tasks(q)
        return PagedResult(items=items, total=total, page=q.page, page_size=q.page_size)

    def get(self, task_id: int) -> TaskView:
        return self._view(task_id)

    def create(self, req: CreateTaskRequest) -> TaskView:
        title = require_text(req.title, "title")
        priority = priority_to_domain(req.priority)

        if not self._repo.project_exists(req.project_id):
            raise NotFoundError("Project not found.")

        # req.status is ignored: every task starts in the initial status.
        task_id = self._repo.add_task(
            project_id=req.project_id,
            title=title,
            description=clean_optional(req.description),
            status=INITIAL_STATUS,
            priority=priority,
            due_date=req.due_date,
            tags=req.tags or None,
        )
        if task_id is None:
            # project removed between the existence check and the insert
            raise NotFoundError("Project not found.")

        logger.info("Task created id=%s project=%s", task_id, req.project_id)
        return self._view(task_id)

    def update(self, task_id: int, req: UpdateTaskRequest) -> TaskView:
        title = require_text(req.title, "title")
        priority = priority_to_domain(req.priority)

        if not self._repo.update_task_fields(
            task_id,
            title=title,
            description=clean_optional(req.description),
            priority=priority,
            due_date=req.due_date,
        ):
            raise NotFoundError("Task not found.")
        return self._view(task_id)

    def update_status(self, task_id: int, status: TaskStatusDto) -> TaskView:
        requested = status_to_domain(status)

        # Compare-and-set against the status we validated. On a lost race we
        # re-read and re-validate; the transition graph is acyclic, so this
        # settles after at most a few rounds.
        while True:
            task = self._repo.get_task(task_id)
            if task is None:
                raise NotFoundError("Task not found.")

            try:
                changed = check_transition(task.status, requested)
            except InvalidTransitionError:
                logger.info(
                    "Rejected status change task=%s %s -> %s",
                    task_id,
                    task.status.value,
                    requested.value,
                )
                raise
            if not changed:
                return self._view(task_id)

            if self._repo.compare_and_set_status(
                task_id, expected=task.status, new_status=requested
            ):
                logger.info(
                    "Task status changed id=%s %s -> %s",
                    task_id,
                    task.status.value,
                    requested.value,
                )
                return self._view(task_id)

            logger.debug("Status compare-and-set lost a race task=%s; retrying", task_id)

    def set_tags(self, task_id: int, tags: list[str]) -> TaskView:
        if not self._repo.replace_task_tags(task_id, tags):
            raise NotFoundError("Task not found.")
        logger.info("Task tags replaced id=%s", task_id)
        return self._view(task_id)

    def add_comment(self, task_id: int, text: str) -> Comment:
        clean = require_text(text, "text")
        if not self._repo.task_exists(task_id):
            raise NotFoundError("Task not found.")
        comment = self._repo.add_comment(task_id, clean)
        if comment is None:
            raise NotFoundError("Task not found.")
        return comment

    def list_comments(self, task_id: int) -> list[Comment]:
        if not self._repo.task_exists(task_id):
            raise NotFoundError("Task not found.")
        return self._repo.list_comments(task_id)

    def list_tag_names(self) -> list[str]:
        return self._repo.list_tag_names()

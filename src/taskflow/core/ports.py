# src/taskflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

Services depend on this Protocol instead of the concrete SQLite store,
which keeps storage swappable and makes testing easier.
"""

from collections.abc import Iterable
from datetime import date
from typing import Any, Protocol


class TaskRepo(Protocol):
    # Existence checks
    def project_exists(self, project_id: int) -> bool: ...
    def task_exists(self, task_id: int) -> bool: ...

    # Projects
    def add_project(self, *, name: str, description: str | None) -> Any: ...
    def get_project(self, project_id: int) -> Any | None: ...
    def list_projects(self) -> list[Any]: ...
    def update_project(self, project_id: int, *, name: str, description: str | None) -> bool: ...
    def delete_project(self, project_id: int) -> int | None: ...

    # Tasks
    def add_task(
            self,
            *,
            project_id: int,
            title: str,
            description: str | None,
            status: Any,
            priority: Any,
            due_date: date | None,
            tags: Iterable[str] | None = None,
    ) -> int | None: ...
    def get_task(self, task_id: int) -> Any | None: ...
    def get_task_view(self, task_id: int) -> Any | None: ...
    def update_task_fields(
            self,
            task_id: int,
            *,
            title: str,
            description: str | None,
            priority: Any,
            due_date: date | None,
    ) -> bool: ...
    def compare_and_set_status(self, task_id: int, *, expected: Any, new_status: Any) -> bool: ...
    def replace_task_tags(self, task_id: int, tags: Iterable[str] | None) -> bool: ...
    def search_tasks(self, search: Any) -> tuple[list[Any], int]: ...

    # Tags / comments
    def list_tag_names(self) -> list[str]: ...
    def add_comment(self, task_id: int, text: str) -> Any | None: ...
    def list_comments(self, task_id: int) -> list[Any]: ...

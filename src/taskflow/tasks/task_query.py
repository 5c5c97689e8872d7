# src/taskflow/tasks/task_query.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .task_models import (
    TaskPriorityDto,
    TaskStatusDto,
    priority_to_domain,
    status_to_domain,
)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def normalize_paging(page: int, page_size: int) -> tuple[int, int]:
    """
    page <= 0 becomes 1.
    page_size outside (0, MAX_PAGE_SIZE] falls back to DEFAULT_PAGE_SIZE (not clamped).
    """
    page = 1 if page <= 0 else int(page)
    page_size = DEFAULT_PAGE_SIZE if page_size <= 0 or page_size > MAX_PAGE_SIZE else int(page_size)
    return page, page_size


@dataclass(frozen=True, slots=True)
class TaskSearch:
    project_id: int | None = None
    status: TaskStatusDto | None = None
    priority: TaskPriorityDto | None = None
    tag: str | None = None
    search: str | None = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def normalized(self) -> TaskSearch:
        page, page_size = normalize_paging(self.page, self.page_size)
        tag = (self.tag or "").strip().lower() or None
        search = (self.search or "").strip().lower() or None
        return TaskSearch(
            project_id=self.project_id,
            status=self.status,
            priority=self.priority,
            tag=tag,
            search=search,
            page=page,
            page_size=page_size,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def where_clause(self) -> tuple[str, list[Any]]:
        """
        AND-compose the active filters over `tasks t`.

        Expects a normalized search: tag/search are already trimmed and lowercased.
        """
        clauses: list[str] = []
        params: list[Any] = []

        if self.project_id is not None:
            clauses.append("t.project_id = ?")
            params.append(int(self.project_id))

        if self.status is not None:
            clauses.append("t.status = ?")
            params.append(status_to_domain(self.status).value)

        if self.priority is not None:
            clauses.append("t.priority = ?")
            params.append(priority_to_domain(self.priority).value)

        if self.tag:
            # tag names are stored normalized (lowercase)
            clauses.append(
                "EXISTS (SELECT 1 FROM task_tags tt JOIN tags g ON g.id = tt.tag_id "
                "WHERE tt.task_id = t.id AND g.name = ?)"
            )
            params.append(self.tag)

        if self.search:
            # fold() is registered on every connection (unicode-aware lower()).
            clauses.append(
                "(instr(fold(t.title), ?) > 0 "
                "OR (t.description IS NOT NULL AND instr(fold(t.description), ?) > 0))"
            )
            params.extend([self.search, self.search])

        if not clauses:
            return "", params
        return "WHERE " + " AND ".join(clauses), params

# src/taskflow/tasks/project_service.py

from __future__ import annotations

import logging

from ..core.errors import NotFoundError
from ..core.ports import TaskRepo
from .task_models import CreateProjectRequest, Project

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, repo: TaskRepo) -> None:
        self._repo = repo

    def list_projects(self) -> list[Project]:
        return self._repo.list_projects()

    def get_project(self, project_id: int) -> Project:
        project = self._repo.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found.")
        return project

    def create_project(self, req: CreateProjectRequest) -> Project:
        clean = req.cleaned()
        project = self._repo.add_project(name=clean.name, description=clean.description)
        logger.info("Project created id=%s name=%s", project.id, project.name)
        return project

    def update_project(self, project_id: int, req: CreateProjectRequest) -> Project:
        clean = req.cleaned()
        if not self._repo.update_project(
            project_id, name=clean.name, description=clean.description
        ):
            raise NotFoundError("Project not found.")
        return self.get_project(project_id)

    def delete_project(self, project_id: int) -> int:
        """Delete a project and, with it, its tasks. Returns the number of tasks removed."""
        removed = self._repo.delete_project(project_id)
        if removed is None:
            raise NotFoundError("Project not found.")
        logger.info("Project deleted id=%s tasks_removed=%s", project_id, removed)
        return removed

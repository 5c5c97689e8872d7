# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.cli.bootstrap import create_initial_state
from taskflow.core.state import AppState
from taskflow.tasks.project_service import ProjectService
from taskflow.tasks.task_models import CreateProjectRequest, Project
from taskflow.tasks.task_service import TaskService
from taskflow.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        db_path=tmp_path / "taskflow.sqlite3",
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.db_path)


@pytest.fixture()
def tasks(store: TaskStore) -> TaskService:
    return TaskService(store)


@pytest.fixture()
def projects(store: TaskStore) -> ProjectService:
    return ProjectService(store)


@pytest.fixture()
def project(projects: ProjectService) -> Project:
    return projects.create_project(CreateProjectRequest(name="Alpha", description="first"))


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """AppState wired exactly like the CLI does, over a tmp SQLite file."""
    return create_initial_state(settings=settings)

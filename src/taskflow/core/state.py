# src/taskflow/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..tasks.project_service import ProjectService
from ..tasks.task_service import TaskService
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    store: TaskStore
    projects: ProjectService
    tasks: TaskService

    # Serializes console/connector command handling (the store itself needs no lock).
    lock: threading.Lock = field(default_factory=threading.Lock)

# src/taskflow/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterable, Iterator
from datetime import date
from pathlib import Path
from typing import Any

from .tags import upsert_tags
from .task_models import (
    Comment,
    Project,
    Tag,
    Task,
    TaskPriority,
    TaskStatus,
    TaskView,
)
from .task_query import TaskSearch

logger = logging.getLogger(__name__)

# Added to the previous updated_at so every mutation strictly advances it.
_MIN_TICK = 0.000001


def _fold(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class TaskStore:
    """
    SQLite store for projects, tasks, tags, task/tag links and comments.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - writes run inside BEGIN IMMEDIATE, so one logical mutation is applied
      (and observed by snapshot reads) all at once
    """

    def __init__(self, db_path: str | Path = "taskflow.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys=ON")
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.create_function("fold", 1, _fold, deterministic=True)

    @contextlib.contextmanager
    def _tx(self, *, write: bool) -> Iterator[sqlite3.Cursor]:
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            cur = conn.cursor()
            try:
                yield cur
            except BaseException:
                conn.rollback()
                raise
            conn.commit()
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS projects (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    project_id INTEGER NOT NULL
                        REFERENCES projects(id) ON DELETE CASCADE,
                    title TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'todo',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    due_date TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tags (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_tags (
                    task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    tag_id INTEGER NOT NULL REFERENCES tags(id),
                    PRIMARY KEY (task_id, tag_id)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS comments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    text TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column tasks.%s", name)

            add_col("description", "TEXT")
            add_col("priority", "TEXT NOT NULL DEFAULT 'medium'")
            add_col("due_date", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks(created_at, id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status, priority)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_task_tags_tag ON task_tags(tag_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_comments_task ON comments(task_id)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_project(row: sqlite3.Row) -> Project:
        return Project(
            id=int(row["id"]),
            name=str(row["name"]),
            description=row["description"],
            created_at=float(row["created_at"]),
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            project_id=int(row["project_id"]),
            title=str(row["title"]),
            description=row["description"],
            status=TaskStatus.from_db(row["status"]),
            priority=TaskPriority.from_db(row["priority"]),
            due_date=date.fromisoformat(row["due_date"]) if row["due_date"] else None,
            created_at=float(row["created_at"]),
            updated_at=float(row["updated_at"]),
        )

    @staticmethod
    def _row_to_comment(row: sqlite3.Row) -> Comment:
        return Comment(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            text=str(row["text"]),
            created_at=float(row["created_at"]),
        )

    @staticmethod
    def _tag_names_for(cur: sqlite3.Cursor, task_ids: list[int]) -> dict[int, list[str]]:
        out: dict[int, list[str]] = {tid: [] for tid in task_ids}
        if not task_ids:
            return out
        ph = ",".join("?" for _ in task_ids)
        cur.execute(
            f"""
            SELECT tt.task_id, g.name
            FROM task_tags tt
            JOIN tags g ON g.id = tt.tag_id
            WHERE tt.task_id IN ({ph})
            """,
            task_ids,
        )
        for row in cur.fetchall():
            out[int(row["task_id"])].append(str(row["name"]))
        return out

    @staticmethod
    def _exists(cur: sqlite3.Cursor, table: str, row_id: int) -> bool:
        cur.execute(f"SELECT 1 FROM {table} WHERE id = ?", (int(row_id),))
        return cur.fetchone() is not None

    @staticmethod
    def _link_tags(cur: sqlite3.Cursor, task_id: int, tags: Iterable[Tag]) -> None:
        cur.executemany(
            "INSERT OR IGNORE INTO task_tags(task_id, tag_id) VALUES (?, ?)",
            [(int(task_id), t.id) for t in tags],
        )

    @staticmethod
    def _touch(cur: sqlite3.Cursor, task_id: int, now: float) -> None:
        cur.execute(
            "UPDATE tasks SET updated_at = MAX(?, updated_at + ?) WHERE id = ?",
            (now, _MIN_TICK, int(task_id)),
        )

    # ---- counters / existence checks ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def count_projects(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM projects").fetchone()
            return int(n)
        finally:
            conn.close()

    def project_exists(self, project_id: int) -> bool:
        conn = self._get_conn()
        try:
            return self._exists(conn.cursor(), "projects", project_id)
        finally:
            conn.close()

    def task_exists(self, task_id: int) -> bool:
        conn = self._get_conn()
        try:
            return self._exists(conn.cursor(), "tasks", task_id)
        finally:
            conn.close()

    # ---- projects ----

    def add_project(self, *, name: str, description: str | None) -> Project:
        now = time.time()
        with self._tx(write=True) as cur:
            cur.execute(
                "INSERT INTO projects(name, description, created_at) VALUES (?, ?, ?)",
                (name, description, now),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for projects insert")
        logger.debug("Project added id=%s name=%s", rowid, name)
        return Project(id=int(rowid), name=name, description=description, created_at=now)

    def get_project(self, project_id: int) -> Project | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM projects WHERE id = ?", (int(project_id),)
            ).fetchone()
            return self._row_to_project(row) if row else None
        finally:
            conn.close()

    def list_projects(self) -> list[Project]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM projects ORDER BY created_at DESC, id DESC"
            ).fetchall()
            return [self._row_to_project(r) for r in rows]
        finally:
            conn.close()

    def update_project(self, project_id: int, *, name: str, description: str | None) -> bool:
        with self._tx(write=True) as cur:
            cur.execute(
                "UPDATE projects SET name = ?, description = ? WHERE id = ?",
                (name, description, int(project_id)),
            )
            return cur.rowcount == 1

    def delete_project(self, project_id: int) -> int | None:
        """
        Delete a project together with its tasks (links and comments cascade).

        Returns the number of tasks removed, or None if the project is missing.
        Tags are shared and are left in place.
        """
        with self._tx(write=True) as cur:
            if not self._exists(cur, "projects", project_id):
                return None
            cur.execute("SELECT COUNT(*) FROM tasks WHERE project_id = ?", (int(project_id),))
            (n_tasks,) = cur.fetchone()
            cur.execute("DELETE FROM projects WHERE id = ?", (int(project_id),))
        logger.debug("Project deleted id=%s tasks=%s", project_id, n_tasks)
        return int(n_tasks)

    # ---- tasks ----

    def add_task(
        self,
        *,
        project_id: int,
        title: str,
        description: str | None,
        status: TaskStatus,
        priority: TaskPriority,
        due_date: date | None,
        tags: Iterable[str] | None = None,
    ) -> int | None:
        """
        Insert a task (and its tag links) in one transaction.

        Returns the new task id, or None if the project does not exist.
        """
        now = time.time()
        with self._tx(write=True) as cur:
            if not self._exists(cur, "projects", project_id):
                return None
            cur.execute(
                """
                INSERT INTO tasks(
                    project_id, title, description, status, priority,
                    due_date, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(project_id),
                    title,
                    description,
                    status.value,
                    priority.value,
                    due_date.isoformat() if due_date else None,
                    now,
                    now,
                ),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)

            if tags:
                self._link_tags(cur, task_id, upsert_tags(cur, tags))

        logger.debug(
            "Task added id=%s project=%s status=%s priority=%s",
            task_id,
            project_id,
            status.value,
            priority.value,
        )
        return task_id

    def get_task(self, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def get_task_view(self, task_id: int) -> TaskView | None:
        with self._tx(write=False) as cur:
            cur.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),))
            row = cur.fetchone()
            if row is None:
                return None
            task = self._row_to_task(row)
            names = self._tag_names_for(cur, [task.id])[task.id]
        return TaskView.from_task(task, names)

    def update_task_fields(
        self,
        task_id: int,
        *,
        title: str,
        description: str | None,
        priority: TaskPriority,
        due_date: date | None,
    ) -> bool:
        """Overwrite the editable fields; status and tags are untouched."""
        with self._tx(write=True) as cur:
            cur.execute(
                """
                UPDATE tasks
                SET title = ?,
                    description = ?,
                    priority = ?,
                    due_date = ?,
                    updated_at = MAX(?, updated_at + ?)
                WHERE id = ?
                """,
                (
                    title,
                    description,
                    priority.value,
                    due_date.isoformat() if due_date else None,
                    time.time(),
                    _MIN_TICK,
                    int(task_id),
                ),
            )
            return cur.rowcount == 1

    def compare_and_set_status(
        self, task_id: int, *, expected: TaskStatus, new_status: TaskStatus
    ) -> bool:
        """
        Atomically transitions:
          status == expected -> status = new_status

        Returns True if this caller's write was applied.
        """
        with self._tx(write=True) as cur:
            cur.execute(
                """
                UPDATE tasks
                SET status = ?, updated_at = MAX(?, updated_at + ?)
                WHERE id = ?
                  AND status = ?
                """,
                (new_status.value, time.time(), _MIN_TICK, int(task_id), expected.value),
            )
            return cur.rowcount == 1

    def replace_task_tags(self, task_id: int, tags: Iterable[str] | None) -> bool:
        """
        Clear all tag links of a task, then link the resolved new set.

        The task's updated_at advances even if the new set is empty.
        Returns False if the task does not exist.
        """
        tag_list = list(tags or [])
        with self._tx(write=True) as cur:
            if not self._exists(cur, "tasks", task_id):
                return False
            cur.execute("DELETE FROM task_tags WHERE task_id = ?", (int(task_id),))
            if tag_list:
                self._link_tags(cur, task_id, upsert_tags(cur, tag_list))
            self._touch(cur, task_id, time.time())
        return True

    def search_tasks(self, search: TaskSearch) -> tuple[list[TaskView], int]:
        """
        Filtered page of tasks, newest first (ties broken by id), plus the
        filtered total. `search` must already be normalized.

        A page past the end is empty; its offset is never sent to SQLite,
        which only takes 64-bit integers.
        """
        where, params = search.where_clause()
        with self._tx(write=False) as cur:
            cur.execute(f"SELECT COUNT(*) FROM tasks t {where}", params)
            (total,) = cur.fetchone()
            if search.offset >= total:
                return [], int(total)

            cur.execute(
                f"""
                SELECT t.*
                FROM tasks t
                {where}
                ORDER BY t.created_at DESC, t.id DESC
                LIMIT ? OFFSET ?
                """,
                [*params, search.page_size, search.offset],
            )
            tasks = [self._row_to_task(r) for r in cur.fetchall()]
            names = self._tag_names_for(cur, [t.id for t in tasks])

        return [TaskView.from_task(t, names[t.id]) for t in tasks], int(total)

    # ---- tags ----

    def upsert_tags(self, raw_tags: Iterable[str] | None) -> list[Tag]:
        raw = list(raw_tags or [])
        if not raw:
            return []
        with self._tx(write=True) as cur:
            return upsert_tags(cur, raw)

    def list_tag_names(self) -> list[str]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT name FROM tags ORDER BY name").fetchall()
            return [str(r["name"]) for r in rows]
        finally:
            conn.close()

    # ---- comments ----

    def add_comment(self, task_id: int, text: str) -> Comment | None:
        """Append a comment; returns None (and writes nothing) if the task is missing."""
        now = time.time()
        with self._tx(write=True) as cur:
            if not self._exists(cur, "tasks", task_id):
                return None
            cur.execute(
                "INSERT INTO comments(task_id, text, created_at) VALUES (?, ?, ?)",
                (int(task_id), text, now),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for comments insert")
        logger.debug("Comment added id=%s task=%s", rowid, task_id)
        return Comment(id=int(rowid), task_id=int(task_id), text=text, created_at=now)

    def list_comments(self, task_id: int) -> list[Comment]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM comments WHERE task_id = ? ORDER BY created_at ASC, id ASC",
                (int(task_id),),
            ).fetchall()
            return [self._row_to_comment(r) for r in rows]
        finally:
            conn.close()

    def count_comments(self, task_id: int | None = None) -> int:
        conn = self._get_conn()
        try:
            if task_id is None:
                (n,) = conn.execute("SELECT COUNT(*) FROM comments").fetchone()
            else:
                (n,) = conn.execute(
                    "SELECT COUNT(*) FROM comments WHERE task_id = ?", (int(task_id),)
                ).fetchone()
            return int(n)
        finally:
            conn.close()

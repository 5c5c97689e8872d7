# tests/test_task_service.py

from __future__ import annotations

from datetime import date

import pytest

from taskflow.core.errors import InvalidArgumentError, InvalidTransitionError, NotFoundError
from taskflow.tasks.task_models import (
    CreateTaskRequest,
    Project,
    TaskPriorityDto,
    TaskStatus,
    TaskStatusDto,
    UpdateTaskRequest,
    priority_to_domain,
    status_to_domain,
    status_to_wire,
)
from taskflow.tasks.task_service import TaskService
from taskflow.tasks.task_store import TaskStore

from .fakes import RacingTaskRepo


def _create(tasks: TaskService, project: Project, **kw):
    kw.setdefault("title", "Write docs")
    return tasks.create(CreateTaskRequest(project_id=project.id, **kw))


def _to_done(tasks: TaskService, task_id: int) -> None:
    tasks.update_status(task_id, TaskStatusDto.IN_PROGRESS)
    tasks.update_status(task_id, TaskStatusDto.DONE)


# ---- create / read ----


def test_create_always_starts_in_todo(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project, status=TaskStatusDto.DONE)
    assert view.status == TaskStatusDto.TODO
    assert tasks.get(view.id).status == TaskStatusDto.TODO


def test_create_trims_and_projects_all_fields(tasks: TaskService, project: Project) -> None:
    view = _create(
        tasks,
        project,
        title="  Ship it  ",
        description="  soon ",
        priority=TaskPriorityDto.HIGH,
        due_date=date(2026, 12, 31),
    )
    assert view.title == "Ship it"
    assert view.description == "soon"
    assert view.priority == TaskPriorityDto.HIGH
    assert view.project_id == project.id
    assert view.due_date == date(2026, 12, 31)
    assert view.created_at == view.updated_at
    assert view.tags == []

    d = view.to_dict()
    assert d["status"] == "Todo"
    assert d["priority"] == "High"
    assert d["dueDate"] == "2026-12-31"
    assert set(d) == {
        "id",
        "projectId",
        "title",
        "description",
        "status",
        "priority",
        "dueDate",
        "createdAt",
        "updatedAt",
        "tags",
    }


def test_create_requires_existing_project(tasks: TaskService, store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        tasks.create(CreateTaskRequest(project_id=999, title="orphan", tags=["x"]))
    assert store.count_tasks() == 0
    assert store.list_tag_names() == []


def test_create_requires_title(tasks: TaskService, project: Project) -> None:
    with pytest.raises(InvalidArgumentError):
        _create(tasks, project, title="   ")


def test_tags_round_trip_sorted(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project, tags=["b", "a"])
    assert view.tags == ["a", "b"]
    assert tasks.get(view.id).tags == ["a", "b"]


def test_create_normalizes_and_caps_tags(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project, tags=["Bug", " bug ", "BUG"])
    assert view.tags == ["bug"]

    many = _create(tasks, project, tags=[f"t{i:02d}" for i in range(25)])
    assert len(many.tags) == 20
    assert many.tags == [f"t{i:02d}" for i in range(20)]


def test_get_missing_task(tasks: TaskService) -> None:
    with pytest.raises(NotFoundError):
        tasks.get(12345)


# ---- update fields ----


def test_update_overwrites_fields_only(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project, description="old", tags=["keep"], due_date=date(2026, 1, 1))
    tasks.update_status(view.id, TaskStatusDto.IN_PROGRESS)
    before = tasks.get(view.id)

    updated = tasks.update(
        view.id,
        UpdateTaskRequest(title=" New title ", priority=TaskPriorityDto.CRITICAL),
    )
    assert updated.title == "New title"
    assert updated.description is None
    assert updated.due_date is None
    assert updated.priority == TaskPriorityDto.CRITICAL
    assert updated.status == TaskStatusDto.IN_PROGRESS
    assert updated.tags == ["keep"]
    assert updated.updated_at > before.updated_at
    assert updated.created_at == before.created_at


def test_update_missing_task(tasks: TaskService) -> None:
    with pytest.raises(NotFoundError):
        tasks.update(7, UpdateTaskRequest(title="x"))


# ---- status ----


def test_legal_status_path(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project)
    started = tasks.update_status(view.id, TaskStatusDto.IN_PROGRESS)
    assert started.status == TaskStatusDto.IN_PROGRESS
    assert started.updated_at > view.updated_at

    done = tasks.update_status(view.id, TaskStatusDto.DONE)
    assert done.status == TaskStatusDto.DONE
    assert done.updated_at > started.updated_at


def test_done_cannot_go_back_to_in_progress(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project)
    _to_done(tasks, view.id)
    before = tasks.get(view.id)

    with pytest.raises(InvalidTransitionError):
        tasks.update_status(view.id, TaskStatusDto.IN_PROGRESS)

    after = tasks.get(view.id)
    assert after.status == TaskStatusDto.DONE
    assert after.updated_at == before.updated_at


def test_todo_cannot_jump_to_done(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project)
    with pytest.raises(InvalidTransitionError):
        tasks.update_status(view.id, TaskStatusDto.DONE)
    assert tasks.get(view.id).status == TaskStatusDto.TODO


def test_same_status_is_noop(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project)
    again = tasks.update_status(view.id, TaskStatusDto.TODO)
    assert again.updated_at == view.updated_at

    _to_done(tasks, view.id)
    done = tasks.get(view.id)
    assert tasks.update_status(view.id, TaskStatusDto.DONE).updated_at == done.updated_at


def test_status_update_missing_task(tasks: TaskService) -> None:
    with pytest.raises(NotFoundError):
        tasks.update_status(42, TaskStatusDto.DONE)


def test_status_retry_after_lost_race_settles_as_noop(store: TaskStore, project: Project) -> None:
    svc = TaskService(store)
    task_id = svc.create(CreateTaskRequest(project_id=project.id, title="race")).id

    racing = RacingTaskRepo(store, sneak_status=TaskStatus.IN_PROGRESS)
    view = TaskService(racing).update_status(task_id, TaskStatusDto.IN_PROGRESS)  # type: ignore[arg-type]

    assert view.status == TaskStatusDto.IN_PROGRESS
    assert racing.cas_calls == 1


def test_status_retry_after_lost_race_revalidates(store: TaskStore, project: Project) -> None:
    svc = TaskService(store)
    task_id = svc.create(CreateTaskRequest(project_id=project.id, title="race")).id

    racing = RacingTaskRepo(store, sneak_status=TaskStatus.CANCELLED)
    with pytest.raises(InvalidTransitionError):
        TaskService(racing).update_status(task_id, TaskStatusDto.IN_PROGRESS)  # type: ignore[arg-type]

    assert svc.get(task_id).status == TaskStatusDto.CANCELLED


# ---- tags ----


def test_clearing_tags_advances_updated_at(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project, tags=["x"])
    cleared = tasks.set_tags(view.id, [])
    assert cleared.tags == []
    assert tasks.get(view.id).tags == []
    assert cleared.updated_at > view.updated_at


def test_replacing_tags_swaps_the_whole_set(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project, tags=["old", "shared"])
    replaced = tasks.set_tags(view.id, ["Shared", "NEW", "new"])
    assert replaced.tags == ["new", "shared"]
    assert replaced.status == TaskStatusDto.TODO
    # tags are never deleted, only unlinked
    assert tasks.list_tag_names() == ["new", "old", "shared"]


def test_set_tags_missing_task(tasks: TaskService, store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        tasks.set_tags(77, ["ghost"])
    assert store.list_tag_names() == []


# ---- comments ----


def test_add_comment(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project)
    c = tasks.add_comment(view.id, "  looks good  ")
    assert c.task_id == view.id
    assert c.text == "looks good"
    assert set(c.to_dict()) == {"id", "taskId", "text", "createdAt"}

    # comments are not task mutations
    assert tasks.get(view.id).updated_at == view.updated_at
    assert [x.id for x in tasks.list_comments(view.id)] == [c.id]


def test_comment_on_missing_task_creates_nothing(tasks: TaskService, store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        tasks.add_comment(404, "hello?")
    assert store.count_comments() == 0


def test_comment_requires_text(tasks: TaskService, project: Project) -> None:
    view = _create(tasks, project)
    with pytest.raises(InvalidArgumentError):
        tasks.add_comment(view.id, "   ")


# ---- wire/domain mapping ----


def test_mapping_fails_loudly_on_unknown_values() -> None:
    with pytest.raises(InvalidArgumentError):
        status_to_domain("Bogus")
    with pytest.raises(InvalidArgumentError):
        priority_to_domain(None)
    with pytest.raises(InvalidArgumentError):
        status_to_wire("archived")
    with pytest.raises(InvalidArgumentError):
        TaskStatusDto.parse("paused")
    with pytest.raises(InvalidArgumentError):
        TaskPriorityDto.parse("urgent")


def test_mapping_round_trips_every_variant() -> None:
    for dto in TaskStatusDto:
        assert status_to_wire(status_to_domain(dto)) is dto
    assert TaskStatusDto.parse("inprogress") is TaskStatusDto.IN_PROGRESS
    assert TaskPriorityDto.parse(" HIGH ") is TaskPriorityDto.HIGH


def test_unknown_stored_status_is_an_error(tasks: TaskService, project: Project, store: TaskStore) -> None:
    view = _create(tasks, project)
    conn = store._get_conn()
    try:
        conn.execute("UPDATE tasks SET status = 'archived' WHERE id = ?", (view.id,))
        conn.commit()
    finally:
        conn.close()

    with pytest.raises(InvalidArgumentError):
        tasks.get(view.id)

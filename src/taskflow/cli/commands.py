# src/taskflow/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable, Collection
from datetime import date

from ..core.errors import InvalidArgumentError, TaskFlowError, problem_details
from ..core.state import AppState
from ..tasks.task_models import (
    Comment,
    CreateProjectRequest,
    CreateTaskRequest,
    Project,
    TaskPriorityDto,
    TaskStatusDto,
    TaskView,
    UpdateTaskRequest,
    status_to_domain,
)
from ..tasks.task_query import DEFAULT_PAGE_SIZE, TaskSearch
from ..tasks.transitions import is_terminal

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


def format_problem(exc: TaskFlowError) -> str:
    p = problem_details(exc)
    return f"[{p['status']} {p['title']}] {p['detail']}"


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /task, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Typed core failures are rendered as one-line problem messages.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except TaskFlowError as e:
            logger.debug("Command /%s failed: %s", name, e)
            return format_problem(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument parsing ----

_PROJECT_KEYS = frozenset({"desc"})
_NEW_TASK_KEYS = frozenset({"desc", "priority", "due", "tags"})
_EDIT_TASK_KEYS = frozenset({"desc", "priority", "due"})
_LIST_TASK_KEYS = frozenset({"project", "status", "priority", "tag", "q", "page", "size"})


def _split_opts(args: list[str], keys: Collection[str]) -> tuple[list[str], dict[str, str]]:
    """
    Separate `key=value` options from positional words.

    Only names in `keys` count as options. Any other word, `x=y` included,
    stays positional so titles and names keep it.
    """
    positional: list[str] = []
    opts: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key.lower() in keys:
            opts[key.lower()] = value
        else:
            positional.append(a)
    return positional, opts


def _parse_int(raw: str | None, name: str) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{name} must be an integer, got {raw!r}") from None


def _parse_date(raw: str | None) -> date | None:
    if raw is None or raw.strip().lower() in ("", "none"):
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        raise InvalidArgumentError(f"due must be YYYY-MM-DD, got {raw!r}") from None


def _parse_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [t for t in raw.split(",") if t.strip()]


def _priority(opts: dict[str, str]) -> TaskPriorityDto:
    raw = opts.get("priority")
    return TaskPriorityDto.parse(raw) if raw else TaskPriorityDto.MEDIUM


# ---- rendering ----


def _fmt_task(v: TaskView) -> str:
    due = f" due={v.due_date.isoformat()}" if v.due_date else ""
    tags = f" [tags: {', '.join(v.tags)}]" if v.tags else ""
    closed = " (closed)" if is_terminal(status_to_domain(v.status)) else ""
    return f"#{v.id} [{v.status.value}] ({v.priority.value}) {v.title}{due}{tags}{closed}"


def _fmt_task_detail(v: TaskView, comments: list[Comment]) -> str:
    d = v.to_dict()
    lines = [
        _fmt_task(v),
        f"  project: {v.project_id}",
        f"  description: {v.description or '-'}",
        f"  created: {d['createdAt']}",
        f"  updated: {d['updatedAt']}",
    ]
    if comments:
        lines.append("  comments:")
        for c in comments:
            lines.append(f"    #{c.id} {c.to_dict()['createdAt']}: {c.text}")
    return "\n".join(lines)


def _fmt_project(p: Project) -> str:
    desc = f" - {p.description}" if p.description else ""
    return f"#{p.id} {p.name}{desc}"


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    return (
        "Status:\n"
        f"  Database: {getattr(state.settings, 'db_path', '?')}\n"
        f"  Projects: {state.store.count_projects()}\n"
        f"  Tasks: {state.store.count_tasks()}\n"
        f"  Comments: {state.store.count_comments()}"
    )


_PROJECT_USAGE = (
    "Usage:\n"
    "  /project list\n"
    "  /project new <name> [desc=...]\n"
    "  /project show <id>\n"
    "  /project edit <id> <name> [desc=...]\n"
    "  /project delete <id>   (also deletes its tasks)"
)


def cmd_project(state: AppState, args: list[str]) -> str:
    if not args:
        return _PROJECT_USAGE

    sub = args[0].lower()
    pos, opts = _split_opts(args[1:], _PROJECT_KEYS)

    if sub == "list":
        projects = state.projects.list_projects()
        if not projects:
            return "No projects yet."
        return "\n".join(_fmt_project(p) for p in projects)

    if sub == "new":
        p = state.projects.create_project(
            CreateProjectRequest(name=" ".join(pos), description=opts.get("desc"))
        )
        return f"Project created: {_fmt_project(p)}"

    if sub == "show" and pos:
        return _fmt_project(state.projects.get_project(_parse_int(pos[0], "project id")))

    if sub == "edit" and pos:
        p = state.projects.update_project(
            _parse_int(pos[0], "project id"),
            CreateProjectRequest(name=" ".join(pos[1:]), description=opts.get("desc")),
        )
        return f"Project updated: {_fmt_project(p)}"

    if sub == "delete" and pos:
        project_id = _parse_int(pos[0], "project id")
        removed = state.projects.delete_project(project_id)
        return f"Project #{project_id} deleted ({removed} task(s) removed)."

    return _PROJECT_USAGE


_TASK_USAGE = (
    "Usage:\n"
    "  /task new <project_id> <title> [desc=...] [priority=Low|Medium|High|Critical]"
    " [due=YYYY-MM-DD] [tags=a,b]\n"
    "  /task show <id>\n"
    "  /task edit <id> <title> [desc=...] [priority=...] [due=...]  (omitted fields are cleared)\n"
    "  /task status <id> <Todo|InProgress|Done|Cancelled>\n"
    "  /task tags <id> [a,b,...]   (no list clears tags)\n"
    "  /task comment <id> <text>\n"
    "  /task list [project=] [status=] [priority=] [tag=] [q=] [page=] [size=]"
)


def cmd_task(state: AppState, args: list[str]) -> str:
    if not args:
        return _TASK_USAGE

    sub = args[0].lower()
    rest = args[1:]

    if sub == "new" and rest:
        pos, opts = _split_opts(rest, _NEW_TASK_KEYS)
        view = state.tasks.create(
            CreateTaskRequest(
                project_id=_parse_int(pos[0], "project id"),
                title=" ".join(pos[1:]),
                description=opts.get("desc"),
                priority=_priority(opts),
                due_date=_parse_date(opts.get("due")),
                tags=_parse_tags(opts.get("tags")),
            )
        )
        return f"Task created: {_fmt_task(view)}"

    if sub == "show" and rest:
        task_id = _parse_int(rest[0], "task id")
        view = state.tasks.get(task_id)
        return _fmt_task_detail(view, state.tasks.list_comments(task_id))

    if sub == "edit" and rest:
        pos, opts = _split_opts(rest, _EDIT_TASK_KEYS)
        view = state.tasks.update(
            _parse_int(pos[0], "task id"),
            UpdateTaskRequest(
                title=" ".join(pos[1:]),
                description=opts.get("desc"),
                priority=_priority(opts),
                due_date=_parse_date(opts.get("due")),
            ),
        )
        return f"Task updated: {_fmt_task(view)}"

    if sub == "status" and len(rest) >= 2:
        view = state.tasks.update_status(
            _parse_int(rest[0], "task id"), TaskStatusDto.parse(rest[1])
        )
        return f"Task status: {_fmt_task(view)}"

    if sub == "tags" and rest:
        tags = [t for chunk in rest[1:] for t in _parse_tags(chunk)]
        view = state.tasks.set_tags(_parse_int(rest[0], "task id"), tags)
        return f"Task tags: {_fmt_task(view)}"

    if sub == "comment" and len(rest) >= 2:
        # Comment text is free-form; nothing after the id is an option.
        c = state.tasks.add_comment(_parse_int(rest[0], "task id"), " ".join(rest[1:]))
        return f"Comment #{c.id} added to task #{c.task_id}."

    if sub == "list":
        pos, opts = _split_opts(rest, _LIST_TASK_KEYS)
        result = state.tasks.search(
            TaskSearch(
                project_id=_parse_int(opts["project"], "project") if "project" in opts else None,
                status=TaskStatusDto.parse(opts["status"]) if "status" in opts else None,
                priority=TaskPriorityDto.parse(opts["priority"]) if "priority" in opts else None,
                tag=opts.get("tag"),
                search=opts.get("q") or (" ".join(pos) or None),
                page=_parse_int(opts.get("page", "1"), "page"),
                page_size=_parse_int(opts.get("size", str(DEFAULT_PAGE_SIZE)), "size"),
            )
        )
        header = f"Tasks {len(result.items)} of {result.total} (page {result.page}, size {result.page_size}):"
        return "\n".join([header, *(_fmt_task(v) for v in result.items)])

    return _TASK_USAGE


def cmd_tags(state: AppState, args: list[str]) -> str:
    names = state.tasks.list_tag_names()
    if not names:
        return "No tags yet."
    return "Tags: " + ", ".join(names)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database location and totals.")
registry.register(
    "project", cmd_project, help_text="Projects: /project list|new|show|edit|delete.", aliases=["p"]
)
registry.register(
    "task",
    cmd_task,
    help_text="Tasks: /task new|show|edit|status|tags|comment|list.",
    aliases=["t"],
)
registry.register("tags", cmd_tags, help_text="List all known tag names.")

# src/taskflow/tasks/tags.py

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable

from .task_models import Tag

logger = logging.getLogger(__name__)

MAX_TAGS_PER_BATCH = 20


def normalize_tag_names(raw_tags: Iterable[str] | None) -> list[str]:
    """
    Trim, drop blanks, lowercase, dedupe (first appearance wins) and keep
    at most MAX_TAGS_PER_BATCH names. Excess names are dropped, not rejected.
    """
    out: list[str] = []
    seen: set[str] = set()
    for raw in raw_tags or []:
        name = str(raw).strip()
        if not name:
            continue
        name = name.lower()
        if name in seen:
            continue
        seen.add(name)
        out.append(name)
        if len(out) >= MAX_TAGS_PER_BATCH:
            break
    return out


def _select_tags(cur: sqlite3.Cursor, names: list[str]) -> dict[str, Tag]:
    ph = ",".join("?" for _ in names)
    cur.execute(f"SELECT id, name FROM tags WHERE name IN ({ph})", names)
    return {str(r["name"]): Tag(id=int(r["id"]), name=str(r["name"])) for r in cur.fetchall()}


def upsert_tags(cur: sqlite3.Cursor, raw_tags: Iterable[str] | None) -> list[Tag]:
    """
    Resolve raw tag strings to persisted tags, creating the missing ones.

    Runs on the caller's cursor so it joins the caller's transaction.
    Missing names are inserted in one batch with INSERT OR IGNORE against the
    unique name index, then re-selected, so a concurrent writer creating the
    same name cannot cause a duplicate or a failure.
    """
    names = normalize_tag_names(raw_tags)
    if not names:
        return []

    found = _select_tags(cur, names)
    missing = [n for n in names if n not in found]
    if missing:
        cur.executemany("INSERT OR IGNORE INTO tags(name) VALUES (?)", [(n,) for n in missing])
        found.update(_select_tags(cur, missing))
        logger.debug("Tags created: %s", ", ".join(missing))

    return [found[n] for n in names]

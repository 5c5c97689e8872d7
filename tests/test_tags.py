# tests/test_tags.py

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from taskflow.tasks.tags import MAX_TAGS_PER_BATCH, normalize_tag_names
from taskflow.tasks.task_store import TaskStore


def test_normalize_collapses_case_and_whitespace() -> None:
    assert normalize_tag_names(["Bug", " bug ", "BUG"]) == ["bug"]


def test_normalize_drops_blanks_and_keeps_first_appearance_order() -> None:
    assert normalize_tag_names(["  ", "", "UI", "backend", "ui", "\t"]) == ["ui", "backend"]
    assert normalize_tag_names([]) == []
    assert normalize_tag_names(None) == []


def test_normalize_caps_batch_silently() -> None:
    raw = [f"tag{i:02d}" for i in range(25)]
    out = normalize_tag_names(raw)
    assert len(out) == MAX_TAGS_PER_BATCH == 20
    assert out == raw[:20]


def test_cap_counts_distinct_names_only() -> None:
    raw = ["a", "A", " a "] + [f"t{i}" for i in range(25)]
    out = normalize_tag_names(raw)
    assert out[0] == "a"
    assert len(out) == 20
    assert out[1:] == [f"t{i}" for i in range(19)]


def test_store_upsert_reuses_existing_rows(store: TaskStore) -> None:
    first = store.upsert_tags(["Urgent", "ops"])
    second = store.upsert_tags(["ops", "URGENT", "new"])

    assert [t.name for t in first] == ["urgent", "ops"]
    by_name = {t.name: t.id for t in second}
    assert by_name["urgent"] == first[0].id
    assert by_name["ops"] == first[1].id
    assert store.list_tag_names() == ["new", "ops", "urgent"]


def test_store_upsert_empty_is_noop(store: TaskStore) -> None:
    assert store.upsert_tags([]) == []
    assert store.upsert_tags(["  ", ""]) == []
    assert store.list_tag_names() == []


def test_concurrent_upsert_of_same_new_tag_creates_one_row(store: TaskStore) -> None:
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: store.upsert_tags(["Shared"]), range(8)))

    ids = {tags[0].id for tags in results}
    assert len(ids) == 1
    assert store.list_tag_names() == ["shared"]

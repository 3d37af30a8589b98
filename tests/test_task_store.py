# tests/test_task_store.py

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone

import pytest

from taskdeck.core.ports import RepoSnapshot
from taskdeck.tasks.errors import NotFoundError, StorageError, ValidationError
from taskdeck.tasks.task_models import Priority, SortKey, Task, TaskFilter
from taskdeck.tasks.task_store import TaskStore

from fakes import FakeClock, RecordingRepo


def _assert_stats_consistent(store: TaskStore) -> None:
    s = store.stats()
    assert s.total == s.active + s.completed
    assert s.total == len(store.list("all"))


def test_walkthrough_scenarios(store: TaskStore) -> None:
    t1 = store.create("Buy milk", 0, None)
    assert (t1.id, t1.title, t1.priority, t1.done) == (1, "Buy milk", Priority.LOW, False)
    s = store.stats()
    assert (s.total, s.active, s.completed) == (1, 1, 0)

    t2 = store.create("Pay rent", 2, "2024-01-01")
    assert t2.id == 2
    assert t2.due_date == date(2024, 1, 1)
    toggled = store.toggle(1)
    assert toggled.id == 1 and toggled.done is True
    s = store.stats()
    assert (s.total, s.active, s.completed) == (2, 1, 1)

    active = store.list("active", "priority")
    assert [t.id for t in active] == [2]
    assert active[0].priority == Priority.HIGH

    store.delete(1)
    with pytest.raises(NotFoundError):
        store.toggle(1)

    with pytest.raises(ValidationError):
        store.create("", 1, None)


@pytest.mark.parametrize("title", ["", " ", "\t\n  "])
def test_create_rejects_blank_titles(store: TaskStore, title: str) -> None:
    with pytest.raises(ValidationError):
        store.create(title)
    assert store.stats().total == 0


def test_create_trims_title_and_defaults(store: TaskStore) -> None:
    t = store.create("  Water plants \n")
    assert t.title == "Water plants"
    assert t.priority is Priority.LOW
    assert t.due_date is None
    assert t.done is False
    assert t.created_at.tzinfo is not None


@pytest.mark.parametrize("priority", [-1, 3, True, 1.5, "urgent", "9", "²", "1" * 5000])
def test_create_rejects_invalid_priority(store: TaskStore, priority) -> None:
    with pytest.raises(ValidationError):
        store.create("x", priority)


@pytest.mark.parametrize(
    "due",
    ["2024-13-01", "tomorrow", "01/02/2024", datetime(2024, 1, 1, 9, 0)],
)
def test_create_rejects_bad_due_dates(store: TaskStore, due) -> None:
    with pytest.raises(ValidationError):
        store.create("x", 0, due)


def test_create_accepts_date_objects_and_blank_strings(store: TaskStore) -> None:
    assert store.create("a", 0, date(2025, 5, 6)).due_date == date(2025, 5, 6)
    assert store.create("b", 0, "   ").due_date is None


def test_created_at_strictly_increases_even_with_frozen_or_skewed_clock() -> None:
    clock = FakeClock(step=timedelta(0))
    store = TaskStore(clock=clock)
    a = store.create("a")
    b = store.create("b")
    clock.rewind(timedelta(hours=1))
    c = store.create("c")
    assert a.created_at < b.created_at < c.created_at


def test_ids_are_never_reused(store: TaskStore) -> None:
    store.create("a")
    t2 = store.create("b")
    store.delete(t2.id)
    t3 = store.create("c")
    assert t3.id == 3


def test_delete_is_permanent_and_repeat_fails(store: TaskStore) -> None:
    t = store.create("temp")
    store.delete(t.id)
    with pytest.raises(NotFoundError) as exc:
        store.delete(t.id)
    assert exc.value.task_id == t.id
    with pytest.raises(NotFoundError):
        store.get(t.id)
    assert store.list() == []


def test_toggle_is_its_own_inverse(store: TaskStore) -> None:
    t = store.create("flip", 1, "2024-02-02")
    once = store.toggle(t.id)
    twice = store.toggle(t.id)
    assert once.done is True
    assert twice == t


def test_filters(store: TaskStore) -> None:
    for i in range(6):
        store.create(f"t{i}")
    store.toggle(2)
    store.toggle(5)

    assert all(not t.done for t in store.list("active"))
    assert all(t.done for t in store.list(TaskFilter.COMPLETED))
    assert {t.id for t in store.list("completed")} == {2, 5}
    assert len(store.list("all")) == store.stats().total == 6
    _assert_stats_consistent(store)


def test_default_sort_is_newest_first(store: TaskStore) -> None:
    for title in ("first", "second", "third"):
        store.create(title)
    assert [t.title for t in store.list()] == ["third", "second", "first"]
    assert [t.title for t in store.list(None, "")] == ["third", "second", "first"]


def test_sort_by_priority_breaks_ties_newest_first(store: TaskStore) -> None:
    store.create("low-old", Priority.LOW)
    store.create("high-old", Priority.HIGH)
    store.create("med", Priority.MEDIUM)
    store.create("high-new", Priority.HIGH)
    store.create("low-new", Priority.LOW)

    result = store.list("all", SortKey.PRIORITY)
    prios = [int(t.priority) for t in result]
    assert prios == sorted(prios, reverse=True)
    assert [t.title for t in result] == ["high-new", "high-old", "med", "low-new", "low-old"]


def test_sort_by_due_date_puts_undated_last(store: TaskStore) -> None:
    store.create("undated-old")
    store.create("late", 0, "2024-06-01")
    store.create("early", 0, "2024-01-15")
    store.create("undated-new")
    store.create("early-twin", 0, "2024-01-15")

    result = store.list("all", "due_date")
    assert [t.title for t in result] == [
        "early-twin",
        "early",
        "late",
        "undated-new",
        "undated-old",
    ]
    dated = [t.due_date for t in result if t.due_date is not None]
    assert dated == sorted(dated)


@pytest.mark.parametrize("flt,sort_by", [("done", "created_at"), ("all", "title"), ("ALLX", None)])
def test_list_rejects_unknown_filter_or_sort(store: TaskStore, flt, sort_by) -> None:
    with pytest.raises(ValidationError):
        store.list(flt, sort_by)


def test_list_returns_fresh_list(store: TaskStore) -> None:
    store.create("a")
    first = store.list()
    first.clear()
    assert len(store.list()) == 1


def test_writes_go_through_repo(clock: FakeClock) -> None:
    repo = RecordingRepo()
    store = TaskStore(repo, clock=clock)
    t = store.create("persist me")
    store.toggle(t.id)
    store.delete(t.id)
    assert [op for op, _ in repo.calls] == ["insert", "update", "delete"]
    assert repo.calls[1][1].done is True

    store.close()
    assert repo.closed


@pytest.mark.parametrize("op", ["insert", "update", "delete"])
def test_repo_failure_leaves_store_untouched(clock: FakeClock, op: str) -> None:
    repo = RecordingRepo()
    store = TaskStore(repo, clock=clock)
    existing = store.create("keep")
    before = (store.stats(), store.list())

    repo.fail_on.add(op)
    with pytest.raises(StorageError):
        if op == "insert":
            store.create("new")
        elif op == "update":
            store.toggle(existing.id)
        else:
            store.delete(existing.id)

    assert (store.stats(), store.list()) == before

    repo.fail_on.clear()
    assert store.create("after").id == 2


def test_store_resumes_from_snapshot(clock: FakeClock) -> None:
    base = datetime(2023, 5, 1, tzinfo=timezone.utc)
    snap = RepoSnapshot(
        tasks=[
            Task(id=4, title="b", priority=Priority.HIGH, due_date=None, done=True,
                 created_at=base + timedelta(minutes=5)),
            Task(id=2, title="a", priority=Priority.LOW, due_date=None, done=False,
                 created_at=base),
        ],
        last_id=7,
    )
    store = TaskStore(RecordingRepo(snap), clock=FakeClock(start=base))

    assert [t.id for t in store.list()] == [4, 2]
    new = store.create("c")
    assert new.id == 8
    assert new.created_at > base + timedelta(minutes=5)


def test_snapshot_with_duplicate_ids_is_rejected(clock: FakeClock) -> None:
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    dup = Task(id=1, title="x", priority=Priority.LOW, due_date=None, done=False, created_at=now)
    with pytest.raises(StorageError):
        TaskStore(RecordingRepo(RepoSnapshot(tasks=[dup, dup], last_id=1)), clock=clock)


def test_concurrent_creates_and_reads_stay_consistent() -> None:
    store = TaskStore()
    errors: list[AssertionError] = []
    stop = threading.Event()

    def reader() -> None:
        while not stop.is_set():
            try:
                s = store.stats()
                assert s.total == s.active + s.completed
                assert not any(t.done for t in store.list("active"))
            except AssertionError as e:
                errors.append(e)
                return

    def writer(n: int) -> list[int]:
        ids = []
        for i in range(25):
            t = store.create(f"w{n}-{i}")
            ids.append(t.id)
            if i % 3 == 0:
                store.toggle(t.id)
        return ids

    reader_thread = threading.Thread(target=reader)
    reader_thread.start()
    with ThreadPoolExecutor(max_workers=8) as pool:
        all_ids = [i for ids in pool.map(writer, range(8)) for i in ids]
    stop.set()
    reader_thread.join(timeout=10.0)

    assert not errors
    assert len(all_ids) == len(set(all_ids)) == 200
    assert store.stats().total == 200
    created = [t.created_at for t in store.list()]
    assert len(set(created)) == 200


def _wire(**overrides):
    rec = {
        "id": 1,
        "title": "x",
        "priority": 0,
        "due_date": None,
        "done": False,
        "created_at": "2024-01-01T10:00:00+00:00",
    }
    rec.update(overrides)
    return rec


def test_from_dict_accepts_bool_and_binary_int_done_flags() -> None:
    assert Task.from_dict(_wire(done=True)).done is True
    assert Task.from_dict(_wire(done=1)).done is True
    assert Task.from_dict(_wire(done=0)).done is False


@pytest.mark.parametrize("done", ["false", "true", "", 2, None, 1.0])
def test_from_dict_rejects_non_boolean_done_flags(done) -> None:
    with pytest.raises(ValidationError):
        Task.from_dict(_wire(done=done))

# tests/test_ownership.py

from __future__ import annotations

from datetime import date

import pytest

from errors import Forbidden, NotFound
from ownership import authorize_write, scope_read
from schemas import Identity, Task

ALICE = Identity(user_id="alice", email="alice@example.com")


def _task(task_id: str, owner: str) -> Task:
    return Task(id=task_id, content=task_id, date=date(2026, 10, 19), owner_id=owner)


def test_scope_read_keeps_owned_tasks_in_order() -> None:
    tasks = [_task("1", "alice"), _task("2", "bob"), _task("3", "alice"), _task("4", "carol")]

    assert [t.id for t in scope_read(ALICE, tasks)] == ["1", "3"]
    assert [t.id for t in tasks] == ["1", "2", "3", "4"]


def test_scope_read_empty() -> None:
    assert scope_read(ALICE, []) == []


def test_authorize_write_owner_passes() -> None:
    task = _task("1", "alice")
    assert authorize_write(ALICE, "1", task) is task


def test_authorize_write_other_owner_forbidden() -> None:
    with pytest.raises(Forbidden):
        authorize_write(ALICE, "2", _task("2", "bob"))


def test_authorize_write_missing_is_not_found() -> None:
    with pytest.raises(NotFound):
        authorize_write(ALICE, "missing", None)

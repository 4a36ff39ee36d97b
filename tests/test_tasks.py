# tests/test_tasks.py

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from errors import Forbidden, InvalidInput, NotFound, Unauthenticated
from schemas import Identity, Priority, Status, TaskPatch
from tasks import TaskService


def test_create_defaults(service: TaskService, make_identity) -> None:
    alice = make_identity("alice")

    task = service.create(alice, "  Buy milk ")

    assert task.content == "Buy milk"
    assert task.priority == Priority.LOW
    assert task.status == Status.TODO
    assert task.date == date(2026, 10, 19)
    assert task.owner_id == "alice"


def test_create_with_priority_and_date(service: TaskService, make_identity) -> None:
    alice = make_identity("alice")

    task = service.create(alice, "Taxes", priority=Priority.HIGH, date=date(2027, 4, 15))

    assert task.priority == Priority.HIGH
    assert task.date == date(2027, 4, 15)


@pytest.mark.parametrize("content", ["", "   ", None, "x" * 501])
def test_create_rejects_bad_content(service: TaskService, make_identity, content) -> None:
    alice = make_identity("alice")
    with pytest.raises(InvalidInput):
        service.create(alice, content)


def test_create_requires_existing_owner(service: TaskService) -> None:
    ghost = Identity(user_id="ghost", email="ghost@example.com")
    with pytest.raises(Unauthenticated):
        service.create(ghost, "boo")


def test_users_never_see_each_others_tasks(service: TaskService, make_identity) -> None:
    alice, bob = make_identity("alice"), make_identity("bob")
    a1 = service.create(alice, "a1")
    b1 = service.create(bob, "b1")
    a2 = service.create(alice, "a2")

    assert [t.id for t in service.list(alice)] == [a1.id, a2.id]
    assert [t.id for t in service.list(bob)] == [b1.id]


def test_update_is_partial(service: TaskService, make_identity) -> None:
    alice = make_identity("alice")
    task = service.create(alice, "Buy milk", priority=Priority.HIGH)

    updated = service.update(alice, task.id, TaskPatch(content="Buy oat milk"))

    assert updated.content == "Buy oat milk"
    assert updated.priority == Priority.HIGH
    assert updated.date == task.date
    assert service.list(alice)[0] == updated


def test_status_toggles_both_ways(service: TaskService, make_identity) -> None:
    alice = make_identity("alice")
    task = service.create(alice, "Buy milk", priority=Priority.HIGH)

    service.update(alice, task.id, TaskPatch(status=Status.COMPLETED))
    assert [t.id for t in service.list(alice, status=Status.COMPLETED)] == [task.id]
    assert service.list(alice, status=Status.TODO) == []

    service.update(alice, task.id, TaskPatch(status="todo"))
    assert [t.id for t in service.list(alice, status=Status.TODO)] == [task.id]


def test_patch_ignores_owner_and_id(service: TaskService, make_identity) -> None:
    alice = make_identity("alice")
    make_identity("bob")
    task = service.create(alice, "mine")

    patch = TaskPatch.model_validate({"owner_id": "bob", "id": "other", "content": "still mine"})
    updated = service.update(alice, task.id, patch)

    assert updated.owner_id == "alice"
    assert updated.id == task.id
    assert updated.content == "still mine"


def test_patch_rejects_unknown_and_null_fields() -> None:
    with pytest.raises(ValidationError):
        TaskPatch.model_validate({"text": "legacy field"})
    with pytest.raises(ValidationError):
        TaskPatch.model_validate({"content": None})
    with pytest.raises(ValidationError):
        TaskPatch.model_validate({"content": "   "})


def test_update_and_delete_check_existence_then_owner(service: TaskService, make_identity) -> None:
    alice, bob = make_identity("alice"), make_identity("bob")
    bobs = service.create(bob, "bob's")

    with pytest.raises(Forbidden):
        service.update(alice, bobs.id, TaskPatch(status=Status.COMPLETED))
    with pytest.raises(Forbidden):
        service.delete(alice, bobs.id)
    with pytest.raises(NotFound):
        service.update(alice, "missing", TaskPatch(content="x"))
    with pytest.raises(NotFound):
        service.delete(alice, "missing")

    assert service.list(bob)[0].status == Status.TODO


def test_delete_is_permanent(service: TaskService, make_identity) -> None:
    alice = make_identity("alice")
    task = service.create(alice, "gone soon")

    service.delete(alice, task.id)

    assert service.list(alice) == []
    with pytest.raises(NotFound):
        service.delete(alice, task.id)


def test_summary_and_clear(service: TaskService, make_identity) -> None:
    alice, bob = make_identity("alice"), make_identity("bob")
    t1 = service.create(alice, "one", priority=Priority.HIGH)
    service.create(alice, "two")
    service.create(bob, "bob's", priority=Priority.MEDIUM)
    service.update(alice, t1.id, TaskPatch(status=Status.COMPLETED))

    assert service.summary(alice) == {
        "total": 2, "TODO": 1, "COMPLETED": 1, "LOW": 1, "MEDIUM": 0, "HIGH": 1,
    }

    assert service.clear(alice) == 1
    assert [t.content for t in service.list(alice)] == ["two"]
    assert len(service.list(bob)) == 1

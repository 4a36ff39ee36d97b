import datetime
import logging
import uuid
from typing import List, Optional

from clock import SystemClock
from errors import InvalidInput, Unauthenticated
from ownership import authorize_write, scope_read
from schemas import MAX_CONTENT_LENGTH, Identity, Priority, Status, Task, TaskPatch
from storage import TaskRepository, UserRepository

logger = logging.getLogger(__name__)


class TaskService:
    """Owner-scoped CRUD over a ``TaskRepository``."""

    def __init__(self, tasks: TaskRepository, users: UserRepository, clock=None):
        self.tasks = tasks
        self.users = users
        self.clock = clock or SystemClock()

    def create(
        self,
        identity: Identity,
        content: str,
        priority: Optional[Priority] = None,
        date: Optional[datetime.date] = None,
    ) -> Task:
        content = (content or "").strip()
        if not content:
            raise InvalidInput("Content must not be empty")
        if len(content) > MAX_CONTENT_LENGTH:
            raise InvalidInput(f"Content must be at most {MAX_CONTENT_LENGTH} characters")

        if self.users.get(identity.user_id) is None:
            raise Unauthenticated("Account no longer exists")

        task = Task(
            id=uuid.uuid4().hex,
            content=content,
            priority=priority or Priority.LOW,
            date=date or self.clock.today(),
            status=Status.TODO,
            owner_id=identity.user_id,
        )
        self.tasks.add(task)
        logger.debug("User %s created todo %s", identity.user_id, task.id)
        return task

    def list(
        self,
        identity: Identity,
        status: Optional[Status] = None,
        priority: Optional[Priority] = None,
    ) -> List[Task]:
        tasks = scope_read(identity, self.tasks.list())
        if status is not None:
            tasks = [t for t in tasks if t.status == status]
        if priority is not None:
            tasks = [t for t in tasks if t.priority == priority]
        return tasks

    def summary(self, identity: Identity) -> dict:
        tasks = scope_read(identity, self.tasks.list())
        stats = {"total": len(tasks)}
        for s in Status:
            stats[s.value] = len([t for t in tasks if t.status == s])
        for p in Priority:
            stats[p.value] = len([t for t in tasks if t.priority == p])
        return stats

    def update(self, identity: Identity, task_id: str, patch: TaskPatch) -> Task:
        task = authorize_write(identity, task_id, self.tasks.get(task_id))
        changes = patch.changes()
        updated = task.model_copy(update=changes)
        self.tasks.save(updated)
        logger.debug("User %s updated todo %s: %s", identity.user_id, task_id, sorted(changes))
        return updated

    def delete(self, identity: Identity, task_id: str) -> None:
        authorize_write(identity, task_id, self.tasks.get(task_id))
        self.tasks.delete(task_id)
        logger.debug("User %s deleted todo %s", identity.user_id, task_id)

    def clear(self, identity: Identity, status: Status = Status.COMPLETED) -> int:
        """Delete the caller's tasks in ``status``; returns how many were removed."""
        doomed = self.list(identity, status=status)
        for task in doomed:
            self.tasks.delete(task.id)
        logger.info("User %s cleared %d %s todo(s)", identity.user_id, len(doomed), status.value)
        return len(doomed)

from typing import Iterable, List, Optional

from errors import Forbidden, NotFound
from schemas import Identity, Task


def scope_read(identity: Identity, tasks: Iterable[Task]) -> List[Task]:
    return [t for t in tasks if t.owner_id == identity.user_id]


def authorize_write(identity: Identity, task_id: str, task: Optional[Task]) -> Task:
    # Existence is always checked before ownership.
    if task is None:
        raise NotFound(f"Todo {task_id} not found")
    if task.owner_id != identity.user_id:
        raise Forbidden()
    return task

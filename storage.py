import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from pydantic import ValidationError

from errors import StorageError
from schemas import Task, User

logger = logging.getLogger(__name__)

USERS_KEY = "users"
TASKS_KEY = "todos"


class UserRepository(Protocol):
    def get(self, user_id: str) -> Optional[User]: ...

    def get_by_email(self, email: str) -> Optional[User]: ...

    def add(self, user: User) -> None: ...


class TaskRepository(Protocol):
    def list(self) -> List[Task]: ...

    def get(self, task_id: str) -> Optional[Task]: ...

    def add(self, task: Task) -> None: ...

    def save(self, task: Task) -> None: ...

    def delete(self, task_id: str) -> None: ...


# In-memory

class InMemoryUserRepository:
    def __init__(self):
        self._users: Dict[str, User] = {}

    def get(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.email == email), None)

    def add(self, user: User) -> None:
        self._users[user.id] = user


class InMemoryTaskRepository:
    def __init__(self):
        self._tasks: Dict[str, Task] = {}

    def list(self) -> List[Task]:
        return list(self._tasks.values())

    def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def add(self, task: Task) -> None:
        self._tasks[task.id] = task

    def save(self, task: Task) -> None:
        self._tasks[task.id] = task

    def delete(self, task_id: str) -> None:
        self._tasks.pop(task_id, None)


# JSON document

class JsonFileStore:
    """A single JSON document ``{"users": [...], "todos": [...]}``.

    The file is read on every access and rewritten in full on every mutation.
    There is no locking: concurrent writers race and the last write wins.
    """

    def __init__(self, path):
        self.path = Path(path)
        if not self.path.exists():
            self.dump({USERS_KEY: [], TASKS_KEY: []})
            logger.info("Created empty store at %s", self.path)

    def load(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                doc = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Error loading store %s: %s", self.path, e)
            raise StorageError(f"Could not read data store: {e}")

        if not isinstance(doc, dict):
            raise StorageError("Invalid data store format")
        for key in (USERS_KEY, TASKS_KEY):
            records = doc.setdefault(key, [])
            if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
                logger.error("Invalid %r collection in store %s", key, self.path)
                raise StorageError(f"Invalid data store format: {key!r} must be a list of objects")
        return doc

    def dump(self, doc: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error("Error saving store %s: %s", self.path, e)
            raise StorageError(f"Could not save data store: {e}")

    def records(self, key: str) -> List[dict]:
        return self.load()[key]


def _parse(model, raw: dict):
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise StorageError(f"Invalid {model.__name__.lower()} record: {e.error_count()} error(s)")


class JsonUserRepository:
    def __init__(self, store: JsonFileStore):
        self.store = store

    def get(self, user_id: str) -> Optional[User]:
        raw = next((u for u in self.store.records(USERS_KEY) if u.get("id") == user_id), None)
        return _parse(User, raw) if raw else None

    def get_by_email(self, email: str) -> Optional[User]:
        raw = next((u for u in self.store.records(USERS_KEY) if u.get("email") == email), None)
        return _parse(User, raw) if raw else None

    def add(self, user: User) -> None:
        doc = self.store.load()
        doc[USERS_KEY].append(user.model_dump(mode="json"))
        self.store.dump(doc)


class JsonTaskRepository:
    def __init__(self, store: JsonFileStore):
        self.store = store

    def _find(self, doc: dict, task_id: str) -> Tuple[int, Optional[dict]]:
        for i, raw in enumerate(doc[TASKS_KEY]):
            if raw.get("id") == task_id:
                return i, raw
        return -1, None

    def list(self) -> List[Task]:
        return [_parse(Task, raw) for raw in self.store.records(TASKS_KEY)]

    def get(self, task_id: str) -> Optional[Task]:
        _, raw = self._find(self.store.load(), task_id)
        return _parse(Task, raw) if raw else None

    def add(self, task: Task) -> None:
        doc = self.store.load()
        doc[TASKS_KEY].append(task.model_dump(mode="json"))
        self.store.dump(doc)

    def save(self, task: Task) -> None:
        doc = self.store.load()
        i, _ = self._find(doc, task.id)
        if i < 0:
            doc[TASKS_KEY].append(task.model_dump(mode="json"))
        else:
            doc[TASKS_KEY][i] = task.model_dump(mode="json")
        self.store.dump(doc)

    def delete(self, task_id: str) -> None:
        doc = self.store.load()
        i, _ = self._find(doc, task_id)
        if i >= 0:
            doc[TASKS_KEY].pop(i)
            self.store.dump(doc)


def build_repositories(settings) -> Tuple[UserRepository, TaskRepository]:
    """Return the (users, tasks) pair for the configured backend."""
    if settings.storage_backend == "sql":
        from database import SqlTaskRepository, SqlUserRepository, make_session_factory

        session_factory = make_session_factory(settings.database_url)
        return SqlUserRepository(session_factory), SqlTaskRepository(session_factory)

    store = JsonFileStore(settings.db_path)
    return JsonUserRepository(store), JsonTaskRepository(store)

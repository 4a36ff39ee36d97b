# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

from app import create_app
from auth import Authenticator
from config import Settings
from schemas import Identity, User
from storage import InMemoryTaskRepository, InMemoryUserRepository
from tasks import TaskService

from .fakes import FakeClock

SECRET = "test-secret-0123456789abcdef"
T0 = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Fast bcrypt, no rate limiting, data files under tmp_path."""
    return Settings(
        jwt_secret=SECRET,
        bcrypt_rounds=4,
        db_path=tmp_path / "db.json",
        database_url=f"sqlite:///{tmp_path / 'todos.db'}",
        rate_limit_enabled=False,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture()
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def task_repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture()
def authenticator(settings: Settings, users: InMemoryUserRepository, clock: FakeClock) -> Authenticator:
    return Authenticator.from_settings(settings, users, clock=clock)


@pytest.fixture()
def service(task_repo: InMemoryTaskRepository, users: InMemoryUserRepository, clock: FakeClock) -> TaskService:
    return TaskService(task_repo, users, clock=clock)


@pytest.fixture()
def make_identity(users: InMemoryUserRepository) -> Callable[[str], Identity]:
    """Store a user directly (no bcrypt) and return its identity."""

    def _make(user_id: str) -> Identity:
        email = f"{user_id}@example.com"
        users.add(User(id=user_id, name=user_id, email=email, password_hash="x"))
        return Identity(user_id=user_id, email=email)

    return _make


@pytest.fixture()
def client(settings: Settings, users, task_repo, clock: FakeClock):
    app = create_app(settings, users=users, tasks=task_repo, clock=clock)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def login(client: TestClient) -> Callable[..., Dict[str, str]]:
    """Register + log in over HTTP; returns the Authorization header."""

    def _login(name: str, password: str = "correct horse") -> Dict[str, str]:
        email = f"{name}@example.com"
        r = client.post("/register", json={"name": name, "email": email, "password": password})
        assert r.status_code == 200, r.text
        r = client.post("/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['token']}"}

    return _login

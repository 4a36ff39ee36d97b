# tests/fakes.py

from __future__ import annotations

from datetime import date, datetime, timedelta


class FakeClock:
    """Clock frozen at ``start``; tests move it with ``advance``."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta


class ExplodingUserRepository:
    """Fails on any access; proves a code path never reads the user store."""

    def get(self, user_id):
        raise AssertionError("user store must not be consulted")

    def get_by_email(self, email):
        raise AssertionError("user store must not be consulted")

    def add(self, user):
        raise AssertionError("user store must not be consulted")

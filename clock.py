from datetime import date, datetime, timezone


class SystemClock:
    """Wall clock in UTC; swapped for a fixed clock in tests."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()

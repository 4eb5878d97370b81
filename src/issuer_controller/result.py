"""Scheduling outcome of a reconcile."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@dataclass(frozen=True)
class Result:
    """
    What the scheduler should do after a reconcile returned normally.

    ``requeue_after`` of None means done. Failures are raised instead and
    left to the scheduler's backoff.
    """

    requeue_after: Optional[timedelta] = None

    @classmethod
    def done(cls) -> "Result":
        return cls()

    @classmethod
    def after(cls, interval: timedelta) -> "Result":
        return cls(requeue_after=interval)

    @property
    def requeue(self) -> bool:
        return self.requeue_after is not None

"""Bounded write-then-read-back retry combinator.

The bus can acknowledge a write that the target never latches, so writes
that matter are confirmed by reading the register back. Only latch misses
are retried; a failed transaction aborts at once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from mosfetctl.core.constants import DEFAULT_VERIFY_ATTEMPTS
from mosfetctl.core.errors import BusIoError, VerifyError

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)


class VerifyOutcome(Enum):
    SUCCESS = "success"
    VERIFY_FAILURE = "verify_failure"
    IO_FAILURE = "io_failure"


@dataclass(frozen=True)
class VerifyResult(Generic[T]):
    outcome: VerifyOutcome
    attempts: int
    value: T | None = None
    error: BusIoError | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is VerifyOutcome.SUCCESS

    def raise_for_outcome(self, what: str = "value") -> T:
        """Return the confirmed value, or raise the error that ended the write."""
        if self.error is not None:
            raise self.error
        if self.outcome is not VerifyOutcome.SUCCESS or self.value is None:
            raise VerifyError(
                f"Failed to write {what}: read-back did not match after {self.attempts} attempt(s) "
                "(bus did not latch the value, check board seating and bus wiring)"
            )
        return self.value


def write_verify(
    write: Callable[[], None],
    read: Callable[[], T],
    matches: Callable[[T], bool],
    *,
    attempts: int = DEFAULT_VERIFY_ATTEMPTS,
) -> VerifyResult[T]:
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    last: T | None = None
    for attempt in range(1, attempts + 1):
        try:
            write()
            last = read()
        except BusIoError as exc:
            LOGGER.debug("Verified write aborted on attempt %d: %s", attempt, exc)
            return VerifyResult(VerifyOutcome.IO_FAILURE, attempt, last, exc)
        if matches(last):
            if attempt > 1:
                LOGGER.warning("Value latched after %d attempts", attempt)
            return VerifyResult(VerifyOutcome.SUCCESS, attempt, last)
        LOGGER.debug("Read-back %r did not match on attempt %d", last, attempt)

    return VerifyResult(VerifyOutcome.VERIFY_FAILURE, attempts, last)

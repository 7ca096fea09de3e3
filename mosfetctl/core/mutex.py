"""Cross-process bus lock.

Every tool sharing the physical I2C bus opens the same named counting
semaphore. A holder takes permits until the count reaches zero, so at most
one process talks to the bus at a time, and gives exactly one permit back
when done. Waits are bounded: a holder that crashed without posting cannot
block other invocations for longer than one timeout.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

import posix_ipc

from mosfetctl.core.errors import BusLockError

LOGGER = logging.getLogger(__name__)

DEFAULT_SEMAPHORE_NAME = "/SMI2C_SEM"
DEFAULT_MAX_COUNT = 3
DEFAULT_TIMEOUT_S = 3.0


class BusMutex(ABC):
    def __init__(
        self,
        name: str = DEFAULT_SEMAPHORE_NAME,
        *,
        max_count: int = DEFAULT_MAX_COUNT,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        if max_count < 1:
            raise ValueError("max_count must be >= 1")
        self.name = name
        self.max_count = max_count
        self.timeout_s = timeout_s

    @abstractmethod
    def _wait(self, timeout_s: float) -> int | None:
        """Take one permit; return the count left, or None on timeout.

        Raises InterruptedError when a signal cut the wait short.
        """

    @abstractmethod
    def _post(self) -> None:
        """Give one permit back."""

    @abstractmethod
    def _value(self) -> int:
        """Return the current count."""

    def acquire(self) -> None:
        while True:
            try:
                remaining = self._wait(self.timeout_s)
            except InterruptedError:
                LOGGER.debug("Wait on %s interrupted by a signal, restarting", self.name)
                continue
            if remaining is None:
                remaining = self._value()
                if remaining <= 0:
                    LOGGER.warning(
                        "Timed out after %.1fs waiting for bus semaphore %s; proceeding",
                        self.timeout_s,
                        self.name,
                    )
            if remaining <= 0:
                break
        LOGGER.debug("Acquired bus semaphore %s", self.name)

    def release(self) -> None:
        if self._value() < self.max_count:
            self._post()
        LOGGER.debug("Released bus semaphore %s", self.name)

    def __enter__(self) -> BusMutex:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class PosixBusMutex(BusMutex):
    """Named POSIX semaphore shared by every process on the host."""

    def __init__(
        self,
        name: str = DEFAULT_SEMAPHORE_NAME,
        *,
        max_count: int = DEFAULT_MAX_COUNT,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        super().__init__(name, max_count=max_count, timeout_s=timeout_s)
        if not posix_ipc.SEMAPHORE_VALUE_SUPPORTED:
            raise BusLockError("This platform cannot read POSIX semaphore values (sem_getvalue).")
        try:
            self._semaphore = posix_ipc.Semaphore(
                name,
                posix_ipc.O_CREAT,
                mode=0o666,
                initial_value=max_count,
            )
        except (posix_ipc.Error, OSError) as exc:
            raise BusLockError(f"Could not open bus semaphore {name}: {exc}") from exc

    def _wait(self, timeout_s: float) -> int | None:
        try:
            self._semaphore.acquire(timeout_s)
        except posix_ipc.BusyError:
            return None
        except posix_ipc.SignalError as exc:
            raise InterruptedError(str(exc)) from exc
        return self._semaphore.value

    def _post(self) -> None:
        try:
            self._semaphore.release()
        except posix_ipc.Error as exc:
            raise BusLockError(f"Failed to post bus semaphore {self.name}: {exc}") from exc

    def _value(self) -> int:
        return self._semaphore.value


class _Counter:
    def __init__(self, value: int) -> None:
        self.value = value
        self.condition = threading.Condition()


_COUNTERS: dict[str, _Counter] = {}
_COUNTERS_LOCK = threading.Lock()


class InMemoryBusMutex(BusMutex):
    """Process-local stand-in; instances with the same name share one count."""

    def __init__(
        self,
        name: str = DEFAULT_SEMAPHORE_NAME,
        *,
        max_count: int = DEFAULT_MAX_COUNT,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        super().__init__(name, max_count=max_count, timeout_s=timeout_s)
        with _COUNTERS_LOCK:
            self._counter = _COUNTERS.setdefault(name, _Counter(max_count))

    def _wait(self, timeout_s: float) -> int | None:
        counter = self._counter
        with counter.condition:
            if not counter.condition.wait_for(lambda: counter.value > 0, timeout=timeout_s):
                return None
            counter.value -= 1
            return counter.value

    def _post(self) -> None:
        with self._counter.condition:
            self._counter.value += 1
            self._counter.condition.notify()

    def _value(self) -> int:
        with self._counter.condition:
            return self._counter.value

"""Process-wide signal state: shared pending signals and signal actions."""

from __future__ import annotations

import threading
from typing import Iterator, Optional

from sigkernel.pending import PendingSignals
from sigkernel.signals import SignalAction, SignalInfo, SignalSet, Signo

_NSIG = 64


class WaitQueue:
    """Queue of threads waiting for a notification."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._waiters = 0
        self._tokens = 0

    def wait_timeout(self, timeout: Optional[float]) -> bool:
        """Wait up to ``timeout`` seconds (forever if None).

        Return True if a notification came, False if the timeout expired.
        """
        with self._cond:
            self._waiters += 1
            try:
                notified = self._cond.wait_for(lambda: self._tokens > 0, timeout)
                if notified:
                    self._tokens -= 1
                return bool(notified)
            finally:
                self._waiters -= 1

    def wait(self) -> None:
        """Wait for a notification."""
        self.wait_timeout(None)

    def notify_one(self) -> bool:
        """Wake one waiting thread; return True if there was one."""
        with self._cond:
            if self._waiters > self._tokens:
                self._tokens += 1
                self._cond.notify()
                return True
            return False

    def notify_all(self) -> None:
        """Wake every waiting thread."""
        while self.notify_one():
            pass


class SignalActions:
    """The action installed for each of the 64 signals of a process."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._actions = [SignalAction() for _ in range(_NSIG)]

    def __getitem__(self, signo: int) -> SignalAction:
        return self._actions[Signo(signo) - 1]

    def __setitem__(self, signo: int, action: SignalAction) -> None:
        self._actions[Signo(signo) - 1] = action

    def __iter__(self) -> Iterator[SignalAction]:
        return iter(self._actions)

    def __len__(self) -> int:
        return _NSIG


class ProcessSignalManager:
    """Process-level signal manager, shared by all threads of a process."""

    def __init__(
        self,
        actions: Optional[SignalActions] = None,
        default_restorer: int = 0,
        wait_queue: Optional[WaitQueue] = None,
    ) -> None:
        self._pending = PendingSignals()
        self._lock = threading.Lock()
        self.actions = actions if actions is not None else SignalActions()
        # Shared by every thread of the process, so false wakeups may occur.
        self.wait_queue = wait_queue if wait_queue is not None else WaitQueue()
        self.default_restorer = default_restorer

    def dequeue_signal(self, mask: SignalSet) -> Optional[SignalInfo]:
        """Remove and return the next pending signal in ``mask``, if any."""
        with self._lock:
            return self._pending.dequeue_signal(mask)

    def send_signal(self, sig: SignalInfo) -> None:
        """Send a signal to the process and wake one waiting thread."""
        with self._lock:
            self._pending.put_signal(sig)
        self.wait_queue.notify_one()

    def pending(self) -> SignalSet:
        """Return the signals currently pending for the process."""
        with self._lock:
            return self._pending.set.copy()

    def wait_signal(self) -> None:
        """Block until a signal is sent; may return early for another thread's signal."""
        self.wait_queue.wait()
"""Record of signals that were delivered and are not yet handled."""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Optional

from sigkernel.signals import SignalInfo, SignalSet, Signo


class PendingSignals:
    """Pending signals: at most one per standard signal, a queue per real-time one.

    ``set`` holds every signal that is delivered and not yet handled, whether
    blocked or not.
    """

    def __init__(self) -> None:
        self.set = SignalSet()
        self._info_std: dict[Signo, SignalInfo] = {}
        self._info_rt: defaultdict[Signo, deque[SignalInfo]] = defaultdict(deque)

    def put_signal(self, sig: SignalInfo) -> bool:
        """Queue a signal.

        Return False if it is a standard signal that is already pending, in
        which case it is dropped.
        """
        signo = sig.signo
        added = self.set.add(signo)
        if signo.is_realtime():
            self._info_rt[signo].append(sig)
            return True
        if not added:
            return False
        self._info_std[signo] = sig
        return True

    def dequeue_signal(self, mask: SignalSet) -> Optional[SignalInfo]:
        """Remove and return the lowest pending signal in ``mask``, if any."""
        signo = self.set.dequeue(mask)
        if signo is None:
            return None
        if signo.is_realtime():
            queue = self._info_rt.get(signo)
            if not queue:
                return None
            result = queue.popleft()
            if queue:
                self.set.add(signo)
            return result
        return self._info_std.pop(signo, None)
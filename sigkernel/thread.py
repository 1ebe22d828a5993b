"""Per-thread signal state and delivery of signals to user handlers."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from sigkernel.context import NUM_REGS, UCONTEXT_SIZE, TrapFrame, UContext
from sigkernel.pending import PendingSignals
from sigkernel.process import ProcessSignalManager
from sigkernel.signals import (
    DefaultSignalAction,
    DispositionKind,
    SignalAction,
    SignalActionFlags,
    SignalInfo,
    SignalOSAction,
    SignalSet,
    SignalStack,
)

_log = logging.getLogger(__name__)

_T = TypeVar("_T")

SIGINFO_SIZE = 128
_TRAP_FRAME_SIZE = 8 * (NUM_REGS + 1)

_DEFAULT_TO_OS = {
    DefaultSignalAction.TERMINATE: SignalOSAction.TERMINATE,
    DefaultSignalAction.CORE_DUMP: SignalOSAction.CORE_DUMP,
    DefaultSignalAction.STOP: SignalOSAction.STOP,
    DefaultSignalAction.CONTINUE: SignalOSAction.CONTINUE,
    DefaultSignalAction.IGNORE: None,
}


@dataclass
class SignalFrame:
    """What is pushed on the user stack before a handler runs."""

    ucontext: UContext
    siginfo: SignalInfo
    tf: TrapFrame

    SIZE = UCONTEXT_SIZE + SIGINFO_SIZE + _TRAP_FRAME_SIZE
    ALIGN = 16
    UCONTEXT_OFFSET = 0
    SIGINFO_OFFSET = UCONTEXT_SIZE


class ThreadSignalManager:
    """Thread-level signal manager."""

    def __init__(self, proc: ProcessSignalManager) -> None:
        self.proc = proc
        self._pending = PendingSignals()
        self._pending_lock = threading.Lock()
        self._blocked = SignalSet()
        self._blocked_lock = threading.Lock()
        self._stack = SignalStack()
        self._stack_lock = threading.Lock()
        # Signal frames written to the user stack, keyed by their address.
        self._frames: dict[int, SignalFrame] = {}

    def _dequeue_signal(self, mask: SignalSet) -> Optional[SignalInfo]:
        with self._pending_lock:
            sig = self._pending.dequeue_signal(mask)
        if sig is None:
            sig = self.proc.dequeue_signal(mask)
        return sig

    def _handle_signal(
        self,
        tf: TrapFrame,
        restore_blocked: SignalSet,
        sig: SignalInfo,
        action: SignalAction,
    ) -> Optional[SignalOSAction]:
        signo = sig.signo
        _log.info("Handle signal: %s", signo.name)
        kind = action.disposition.kind
        if kind is DispositionKind.DEFAULT:
            return _DEFAULT_TO_OS[signo.default_action()]
        if kind is DispositionKind.IGNORE:
            return None

        with self._stack_lock:
            use_alt = not self._stack.disabled() and bool(action.flags & SignalActionFlags.ONSTACK)
            sp = self._stack.sp if use_alt else tf.sp

        aligned_sp = (sp - SignalFrame.SIZE) & ~(SignalFrame.ALIGN - 1)
        self._frames[aligned_sp] = SignalFrame(
            ucontext=UContext.from_trap_frame(tf, restore_blocked),
            siginfo=dataclasses.replace(sig),
            tf=tf.copy(),
        )

        tf.pc = action.disposition.handler
        tf.sp = aligned_sp
        tf.arg0 = int(signo)
        tf.arg1 = aligned_sp + SignalFrame.SIGINFO_OFFSET
        tf.arg2 = aligned_sp + SignalFrame.UCONTEXT_OFFSET
        tf.ra = action.restorer if action.restorer is not None else self.proc.default_restorer

        add_blocked = action.mask.copy()
        if not action.flags & SignalActionFlags.NODEFER:
            add_blocked.add(signo)

        if action.flags & SignalActionFlags.RESETHAND:
            self.proc.actions[signo] = SignalAction()

        with self._blocked_lock:
            self._blocked |= add_blocked
        return SignalOSAction.HANDLER

    def check_signals(
        self, tf: TrapFrame, restore_blocked: Optional[SignalSet] = None
    ) -> Optional[tuple[SignalInfo, SignalOSAction]]:
        """Handle pending unblocked signals.

        Return the signal and the action the OS must take, or None when no
        pending signal needs anything from the OS.
        """
        actions = self.proc.actions
        with actions.lock:
            with self._blocked_lock:
                mask = ~self._blocked
                if restore_blocked is None:
                    restore_blocked = self._blocked.copy()
            while True:
                sig = self._dequeue_signal(mask)
                if sig is None:
                    return None
                os_action = self._handle_signal(tf, restore_blocked, sig, actions[sig.signo])
                if os_action is not None:
                    return sig, os_action

    def restore(self, tf: TrapFrame) -> None:
        """Restore the state saved in the signal frame at ``tf.sp`` (``sigreturn``)."""
        frame = self._frames.pop(tf.sp, None)
        if frame is None:
            raise ValueError(f"no signal frame at {tf.sp:#x}")
        tf.pc = frame.tf.pc
        tf.regs = list(frame.tf.regs)
        frame.ucontext.mcontext.restore(tf)
        with self._blocked_lock:
            self._blocked = frame.ucontext.sigmask.copy()

    def send_signal(self, sig: SignalInfo) -> None:
        """Send a signal to this thread and wake the waiting threads."""
        with self._pending_lock:
            self._pending.put_signal(sig)
        self.proc.wait_queue.notify_all()

    def blocked(self) -> SignalSet:
        """Return a copy of the set of blocked signals."""
        with self._blocked_lock:
            return self._blocked.copy()

    def with_blocked(self, func: Callable[[SignalSet], _T]) -> _T:
        """Call ``func`` on the blocked set, under its lock, and return its result."""
        with self._blocked_lock:
            return func(self._blocked)

    def stack(self) -> SignalStack:
        """Return a copy of the alternate signal stack."""
        with self._stack_lock:
            return dataclasses.replace(self._stack)

    def with_stack(self, func: Callable[[SignalStack], _T]) -> _T:
        """Call ``func`` on the alternate stack, under its lock, and return its result."""
        with self._stack_lock:
            return func(self._stack)

    def pending(self) -> SignalSet:
        """Return the signals pending for this thread or its process."""
        with self._pending_lock:
            own = self._pending.set.copy()
        return own | self.proc.pending()

    def wait_timeout(self, set: SignalSet, timeout: Optional[float] = None) -> Optional[SignalInfo]:
        """Wait until a signal of ``set`` is pending and take it.

        Only blocked signals can be waited for. Return None if ``timeout``
        seconds pass first.
        """
        wanted = set & self.blocked()
        sig = self._dequeue_signal(wanted)
        if sig is not None:
            return sig

        wq = self.proc.wait_queue
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if deadline is None:
                wq.wait()
            else:
                remaining = deadline - time.monotonic()
                if remaining <= 0 or not wq.wait_timeout(remaining):
                    return None
            sig = self._dequeue_signal(wanted)
            if sig is not None:
                return sig
"""Signal numbers, signal sets, signal information and signal actions."""

from __future__ import annotations

import errno
import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import Iterable, Iterator, Optional, Union

_log = logging.getLogger(__name__)

SS_DISABLE = 2
"""Flag value marking an alternate signal stack as disabled."""

SIG_DFL = 0
"""Raw handler value selecting the default action."""

SIG_IGN = 1
"""Raw handler value selecting "ignore"."""

_SET_BITS = 64
_SET_MASK = (1 << _SET_BITS) - 1
_I32_MIN = -(1 << 31)
_I32_MAX = (1 << 31) - 1


class DefaultSignalAction(Enum):
    """What happens to a process when a signal with default disposition arrives."""

    TERMINATE = "terminate"
    IGNORE = "ignore"
    CORE_DUMP = "core_dump"
    STOP = "stop"
    CONTINUE = "continue"


class SignalOSAction(Enum):
    """Action the operating system must carry out after a signal is checked."""

    TERMINATE = "terminate"
    CORE_DUMP = "core_dump"
    STOP = "stop"
    CONTINUE = "continue"
    HANDLER = "handler"


class Signo(IntEnum):
    """Signal number."""

    SIGHUP = 1
    SIGINT = 2
    SIGQUIT = 3
    SIGILL = 4
    SIGTRAP = 5
    SIGABRT = 6
    SIGBUS = 7
    SIGFPE = 8
    SIGKILL = 9
    SIGUSR1 = 10
    SIGSEGV = 11
    SIGUSR2 = 12
    SIGPIPE = 13
    SIGALRM = 14
    SIGTERM = 15
    SIGSTKFLT = 16
    SIGCHLD = 17
    SIGCONT = 18
    SIGSTOP = 19
    SIGTSTP = 20
    SIGTTIN = 21
    SIGTTOU = 22
    SIGURG = 23
    SIGXCPU = 24
    SIGXFSZ = 25
    SIGVTALRM = 26
    SIGPROF = 27
    SIGWINCH = 28
    SIGIO = 29
    SIGPWR = 30
    SIGSYS = 31
    SIGRTMIN = 32
    SIGRT1 = 33
    SIGRT2 = 34
    SIGRT3 = 35
    SIGRT4 = 36
    SIGRT5 = 37
    SIGRT6 = 38
    SIGRT7 = 39
    SIGRT8 = 40
    SIGRT9 = 41
    SIGRT10 = 42
    SIGRT11 = 43
    SIGRT12 = 44
    SIGRT13 = 45
    SIGRT14 = 46
    SIGRT15 = 47
    SIGRT16 = 48
    SIGRT17 = 49
    SIGRT18 = 50
    SIGRT19 = 51
    SIGRT20 = 52
    SIGRT21 = 53
    SIGRT22 = 54
    SIGRT23 = 55
    SIGRT24 = 56
    SIGRT25 = 57
    SIGRT26 = 58
    SIGRT27 = 59
    SIGRT28 = 60
    SIGRT29 = 61
    SIGRT30 = 62
    SIGRT31 = 63
    SIGRT32 = 64

    def is_realtime(self) -> bool:
        """Return True for real-time signals (SIGRTMIN and above)."""
        return self >= Signo.SIGRTMIN

    def default_action(self) -> DefaultSignalAction:
        """Return the action taken when the signal has default disposition."""
        return _DEFAULT_ACTIONS.get(self, DefaultSignalAction.IGNORE)


_DEFAULT_ACTIONS: dict[Signo, DefaultSignalAction] = {
    Signo.SIGHUP: DefaultSignalAction.TERMINATE,
    Signo.SIGINT: DefaultSignalAction.TERMINATE,
    Signo.SIGQUIT: DefaultSignalAction.CORE_DUMP,
    Signo.SIGILL: DefaultSignalAction.CORE_DUMP,
    Signo.SIGTRAP: DefaultSignalAction.CORE_DUMP,
    Signo.SIGABRT: DefaultSignalAction.CORE_DUMP,
    Signo.SIGBUS: DefaultSignalAction.CORE_DUMP,
    Signo.SIGFPE: DefaultSignalAction.CORE_DUMP,
    Signo.SIGKILL: DefaultSignalAction.TERMINATE,
    Signo.SIGUSR1: DefaultSignalAction.TERMINATE,
    Signo.SIGSEGV: DefaultSignalAction.CORE_DUMP,
    Signo.SIGUSR2: DefaultSignalAction.TERMINATE,
    Signo.SIGPIPE: DefaultSignalAction.TERMINATE,
    Signo.SIGALRM: DefaultSignalAction.TERMINATE,
    Signo.SIGTERM: DefaultSignalAction.TERMINATE,
    Signo.SIGSTKFLT: DefaultSignalAction.TERMINATE,
    Signo.SIGCHLD: DefaultSignalAction.IGNORE,
    Signo.SIGCONT: DefaultSignalAction.CONTINUE,
    Signo.SIGSTOP: DefaultSignalAction.STOP,
    Signo.SIGTSTP: DefaultSignalAction.STOP,
    Signo.SIGTTIN: DefaultSignalAction.STOP,
    Signo.SIGTTOU: DefaultSignalAction.STOP,
    Signo.SIGURG: DefaultSignalAction.IGNORE,
    Signo.SIGXCPU: DefaultSignalAction.CORE_DUMP,
    Signo.SIGXFSZ: DefaultSignalAction.CORE_DUMP,
    Signo.SIGVTALRM: DefaultSignalAction.TERMINATE,
    Signo.SIGPROF: DefaultSignalAction.TERMINATE,
    Signo.SIGWINCH: DefaultSignalAction.IGNORE,
    Signo.SIGIO: DefaultSignalAction.TERMINATE,
    Signo.SIGPWR: DefaultSignalAction.TERMINATE,
    Signo.SIGSYS: DefaultSignalAction.CORE_DUMP,
}


class SignalActionFlags(IntFlag):
    """Flags of a signal action, with their kernel values."""

    SIGINFO = 0x00000004
    NODEFER = 0x40000000
    RESETHAND = 0x80000000
    RESTART = 0x10000000
    ONSTACK = 0x08000000
    RESTORER = 0x04000000


_KNOWN_FLAGS = 0
for _flag in SignalActionFlags:
    _KNOWN_FLAGS |= _flag.value
del _flag


class DispositionKind(Enum):
    """How a signal is disposed of."""

    DEFAULT = "default"
    IGNORE = "ignore"
    HANDLER = "handler"


@dataclass(frozen=True)
class SignalDisposition:
    """Disposition of a signal: default, ignore, or a handler at an address."""

    kind: DispositionKind = DispositionKind.DEFAULT
    handler: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind is DispositionKind.HANDLER:
            if self.handler is None or self.handler in (SIG_DFL, SIG_IGN) or self.handler < 0:
                raise ValueError(f"invalid handler address: {self.handler!r}")
        elif self.handler is not None:
            raise ValueError(f"{self.kind.value} disposition takes no handler")

    @classmethod
    def default(cls) -> "SignalDisposition":
        """Use the default action of the signal."""
        return cls(DispositionKind.DEFAULT)

    @classmethod
    def ignore(cls) -> "SignalDisposition":
        """Ignore the signal."""
        return cls(DispositionKind.IGNORE)

    @classmethod
    def handler_at(cls, address: int) -> "SignalDisposition":
        """Run the user handler located at ``address``."""
        return cls(DispositionKind.HANDLER, address)


def _as_signo(value: int) -> Signo:
    try:
        return Signo(value)
    except ValueError:
        raise ValueError(f"invalid signal number: {value!r}") from None


def _bit(signo: Signo) -> int:
    return 1 << (signo - 1)


class SignalSet:
    """Set of signals, stored as the 64-bit mask used by ``sigset_t``."""

    __slots__ = ("_bits",)

    def __init__(self, bits: Union[int, Iterable[int]] = 0) -> None:
        if isinstance(bits, int):
            if not 0 <= bits <= _SET_MASK:
                raise ValueError(f"signal mask out of range: {bits:#x}")
            self._bits = bits
        else:
            self._bits = 0
            for signo in bits:
                self._bits |= _bit(_as_signo(signo))

    def add(self, signo: int) -> bool:
        """Add a signal; return False if it was already present."""
        bit = _bit(_as_signo(signo))
        if self._bits & bit:
            return False
        self._bits |= bit
        return True

    def remove(self, signo: int) -> bool:
        """Remove a signal; return False if it was not present."""
        bit = _bit(_as_signo(signo))
        if not self._bits & bit:
            return False
        self._bits &= ~bit
        return True

    def __contains__(self, signo: object) -> bool:
        if not isinstance(signo, int):
            return False
        try:
            return bool(self._bits & _bit(Signo(signo)))
        except ValueError:
            return False

    def is_empty(self) -> bool:
        """Return True if no signal is in the set."""
        return self._bits == 0

    def dequeue(self, mask: "SignalSet") -> Optional[Signo]:
        """Remove and return the lowest-numbered signal also in ``mask``."""
        bits = self._bits & mask._bits
        if not bits:
            return None
        index = (bits & -bits).bit_length() - 1
        self._bits &= ~(1 << index)
        return Signo(index + 1)

    def copy(self) -> "SignalSet":
        """Return an independent copy of the set."""
        return SignalSet(self._bits)

    def __int__(self) -> int:
        return self._bits

    def __index__(self) -> int:
        return self._bits

    def __iter__(self) -> Iterator[Signo]:
        bits = self._bits
        while bits:
            low = bits & -bits
            yield Signo(low.bit_length())
            bits ^= low

    def __len__(self) -> int:
        return bin(self._bits).count("1")

    def __bool__(self) -> bool:
        return self._bits != 0

    def __or__(self, other: "SignalSet") -> "SignalSet":
        if not isinstance(other, SignalSet):
            return NotImplemented
        return SignalSet(self._bits | other._bits)

    def __and__(self, other: "SignalSet") -> "SignalSet":
        if not isinstance(other, SignalSet):
            return NotImplemented
        return SignalSet(self._bits & other._bits)

    def __ior__(self, other: "SignalSet") -> "SignalSet":
        if not isinstance(other, SignalSet):
            return NotImplemented
        self._bits |= other._bits
        return self

    def __iand__(self, other: "SignalSet") -> "SignalSet":
        if not isinstance(other, SignalSet):
            return NotImplemented
        self._bits &= other._bits
        return self

    def __invert__(self) -> "SignalSet":
        return SignalSet(~self._bits & _SET_MASK)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignalSet):
            return NotImplemented
        return self._bits == other._bits

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        names = ", ".join(s.name for s in self)
        return f"SignalSet({{{names}}})"


@dataclass
class SignalInfo:
    """Information attached to a delivered signal (``siginfo``)."""

    signo: Signo
    code: int = 0

    def __post_init__(self) -> None:
        self.signo = _as_signo(self.signo)
        if not _I32_MIN <= self.code <= _I32_MAX:
            raise ValueError(f"signal code out of range: {self.code}")


@dataclass
class SignalStack:
    """Alternate signal stack (``sigaltstack``)."""

    sp: int = 0
    flags: int = SS_DISABLE
    size: int = 0

    def disabled(self) -> bool:
        """Return True if the alternate stack is disabled."""
        return self.flags == SS_DISABLE


@dataclass
class KernelSigaction:
    """Raw kernel ``sigaction`` record, with pointers as plain integers."""

    handler: int = SIG_DFL
    flags: int = 0
    restorer: int = 0
    mask: int = 0


@dataclass
class SignalAction:
    """Action installed for a signal, the counterpart of ``struct sigaction``."""

    flags: SignalActionFlags = SignalActionFlags(0)
    mask: SignalSet = field(default_factory=SignalSet)
    disposition: SignalDisposition = field(default_factory=SignalDisposition.default)
    restorer: Optional[int] = None

    def to_raw(self) -> KernelSigaction:
        """Return the raw kernel representation of this action."""
        kind = self.disposition.kind
        if kind is DispositionKind.DEFAULT:
            handler = SIG_DFL
        elif kind is DispositionKind.IGNORE:
            handler = SIG_IGN
        else:
            handler = self.disposition.handler
        return KernelSigaction(
            handler=handler,
            flags=int(self.flags),
            restorer=self.restorer or 0,
            mask=int(self.mask),
        )

    @classmethod
    def from_raw(cls, raw: KernelSigaction) -> "SignalAction":
        """Build an action from its raw form; unknown flags raise EINVAL."""
        if raw.flags < 0 or raw.flags & ~_KNOWN_FLAGS:
            _log.warning("unrecognized signal flags: %s", raw.flags)
            raise OSError(errno.EINVAL, f"unrecognized signal flags: {raw.flags:#x}")
        flags = SignalActionFlags(raw.flags)

        if raw.handler == SIG_DFL:
            disposition = SignalDisposition.default()
        elif raw.handler == SIG_IGN:
            disposition = SignalDisposition.ignore()
        else:
            disposition = SignalDisposition.handler_at(raw.handler)

        restorer = None
        if flags & SignalActionFlags.RESTORER and raw.restorer:
            restorer = raw.restorer

        return cls(
            flags=flags,
            mask=SignalSet(raw.mask & _SET_MASK),
            disposition=disposition,
            restorer=restorer,
        )
"""Register contexts saved on the user stack around a signal handler."""

from __future__ import annotations

from dataclasses import dataclass, field

from sigkernel.signals import SignalSet, SignalStack

PAGE_SIZE = 4096
"""Size of the page that holds the signal trampoline."""

SIGRETURN_SYSCALL = 139
"""System call number the trampoline issues (``rt_sigreturn``)."""

NUM_REGS = 32
"""Number of general registers in a trap frame."""

MCONTEXT_SIZE = 800
"""Size in bytes of a saved machine context, padded to 16 bytes."""

UCONTEXT_SIZE = 976
"""Size in bytes of a saved user context, padded to 16 bytes."""

_RA = 1
_SP = 2
_A0 = 10

_TRAMPOLINE_ADDRESS = 0x7FFF_FFFF_F000


@dataclass
class TrapFrame:
    """Registers of a user task at the moment it entered the kernel."""

    pc: int = 0
    regs: list[int] = field(default_factory=lambda: [0] * NUM_REGS)

    def __post_init__(self) -> None:
        self.regs = list(self.regs)
        if len(self.regs) != NUM_REGS:
            raise ValueError(f"a trap frame holds {NUM_REGS} registers, got {len(self.regs)}")

    @property
    def sp(self) -> int:
        """Stack pointer."""
        return self.regs[_SP]

    @sp.setter
    def sp(self, value: int) -> None:
        self.regs[_SP] = value

    @property
    def ra(self) -> int:
        """Return address."""
        return self.regs[_RA]

    @ra.setter
    def ra(self, value: int) -> None:
        self.regs[_RA] = value

    @property
    def arg0(self) -> int:
        """First argument register."""
        return self.regs[_A0]

    @arg0.setter
    def arg0(self, value: int) -> None:
        self.regs[_A0] = value

    @property
    def arg1(self) -> int:
        """Second argument register."""
        return self.regs[_A0 + 1]

    @arg1.setter
    def arg1(self, value: int) -> None:
        self.regs[_A0 + 1] = value

    @property
    def arg2(self) -> int:
        """Third argument register."""
        return self.regs[_A0 + 2]

    @arg2.setter
    def arg2(self, value: int) -> None:
        self.regs[_A0 + 2] = value

    def copy(self) -> "TrapFrame":
        """Return an independent copy of the frame."""
        return TrapFrame(self.pc, list(self.regs))


@dataclass(frozen=True)
class MContext:
    """Machine context: the registers to resume with after the handler."""

    pc: int
    regs: tuple[int, ...]

    @classmethod
    def from_trap_frame(cls, tf: TrapFrame) -> "MContext":
        """Capture the registers of ``tf``."""
        return cls(pc=tf.pc, regs=tuple(tf.regs))

    def restore(self, tf: TrapFrame) -> None:
        """Write the saved registers back into ``tf``."""
        tf.pc = self.pc
        tf.regs = list(self.regs)


@dataclass
class UContext:
    """User context passed as the third argument of a signal handler."""

    sigmask: SignalSet
    mcontext: MContext
    flags: int = 0
    link: int = 0
    stack: SignalStack = field(default_factory=SignalStack)

    @classmethod
    def from_trap_frame(cls, tf: TrapFrame, sigmask: SignalSet) -> "UContext":
        """Build a context from ``tf`` that restores ``sigmask`` on return."""
        return cls(sigmask=sigmask.copy(), mcontext=MContext.from_trap_frame(tf))


def signal_trampoline_address() -> int:
    """Return the address of the page that calls ``rt_sigreturn``."""
    return _TRAMPOLINE_ADDRESS
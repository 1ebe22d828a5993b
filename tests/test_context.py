from sigkernel.context import (
    NUM_REGS,
    PAGE_SIZE,
    SIGRETURN_SYSCALL,
    MContext,
    TrapFrame,
    UContext,
    signal_trampoline_address,
)
from sigkernel.signals import SignalSet, Signo

import pytest


def _frame():
    return TrapFrame(pc=0x1000, regs=list(range(100, 100 + NUM_REGS)))


def test_trap_frame_rejects_wrong_register_count():
    with pytest.raises(ValueError):
        TrapFrame(regs=[0, 1, 2])


def test_register_aliases_write_through():
    tf = TrapFrame()
    tf.sp = 0x8000
    tf.ra = 0x3000
    tf.arg0 = 7
    tf.arg1 = 8
    tf.arg2 = 9
    assert tf.sp == 0x8000
    assert tf.ra == 0x3000
    assert (tf.arg0, tf.arg1, tf.arg2) == (7, 8, 9)
    assert tf.regs.count(0) == NUM_REGS - 5


def test_copy_is_independent():
    tf = _frame()
    other = tf.copy()
    other.sp = 1
    other.pc = 2
    assert tf.pc == 0x1000
    assert tf.sp != 1
    assert other == TrapFrame(pc=2, regs=other.regs)


def test_mcontext_round_trip():
    tf = _frame()
    ctx = MContext.from_trap_frame(tf)
    saved = tf.copy()
    tf.pc = 0xDEAD
    tf.sp = 0xBEEF
    ctx.restore(tf)
    assert tf == saved


def test_ucontext_keeps_own_copy_of_mask():
    mask = SignalSet([Signo.SIGINT])
    ctx = UContext.from_trap_frame(_frame(), mask)
    mask.add(Signo.SIGTERM)
    assert list(ctx.sigmask) == [Signo.SIGINT]
    assert ctx.stack.disabled()
    assert ctx.flags == 0 and ctx.link == 0
    assert ctx.mcontext.pc == 0x1000


def test_trampoline_constants():
    assert SIGRETURN_SYSCALL == 139
    assert PAGE_SIZE == 4096
    assert signal_trampoline_address() % PAGE_SIZE == 0
    assert signal_trampoline_address() > 0
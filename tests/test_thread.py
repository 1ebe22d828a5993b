import threading

import pytest

from sigkernel.context import TrapFrame
from sigkernel.process import ProcessSignalManager
from sigkernel.signals import (
    DispositionKind,
    SignalAction,
    SignalActionFlags,
    SignalDisposition,
    SignalInfo,
    SignalOSAction,
    SignalSet,
    Signo,
)
from sigkernel.thread import SignalFrame, ThreadSignalManager

HANDLER = 0x2000
RESTORER = 0x5000
USER_SP = 0x8000


def _setup(flags=SignalActionFlags(0), restorer=None):
    proc = ProcessSignalManager(default_restorer=RESTORER)
    proc.actions[Signo.SIGUSR1] = SignalAction(
        flags=flags,
        disposition=SignalDisposition.handler_at(HANDLER),
        restorer=restorer,
    )
    thread = ThreadSignalManager(proc)
    tf = TrapFrame(pc=0x1000)
    tf.sp = USER_SP
    tf.arg0 = 42
    return proc, thread, tf


def test_handler_sets_up_frame_and_restores():
    _, thread, tf = _setup()
    saved = tf.copy()
    thread.send_signal(SignalInfo(Signo.SIGUSR1, 5))
    result = thread.check_signals(tf, None)
    assert result == (SignalInfo(Signo.SIGUSR1, 5), SignalOSAction.HANDLER)
    assert tf.pc == HANDLER
    assert tf.sp <= USER_SP - SignalFrame.SIZE
    assert tf.sp % SignalFrame.ALIGN == 0
    assert tf.arg0 == Signo.SIGUSR1
    assert tf.arg1 == tf.sp + SignalFrame.SIGINFO_OFFSET
    assert tf.arg2 == tf.sp + SignalFrame.UCONTEXT_OFFSET
    assert tf.ra == RESTORER
    assert Signo.SIGUSR1 in thread.blocked()

    thread.restore(tf)
    assert tf == saved
    assert thread.blocked().is_empty()


def test_action_restorer_overrides_default():
    _, thread, tf = _setup(flags=SignalActionFlags.RESTORER, restorer=0x7000)
    thread.send_signal(SignalInfo(Signo.SIGUSR1))
    thread.check_signals(tf, None)
    assert tf.ra == 0x7000


def test_nodefer_leaves_signal_unblocked():
    _, thread, tf = _setup(flags=SignalActionFlags.NODEFER)
    thread.send_signal(SignalInfo(Signo.SIGUSR1))
    thread.check_signals(tf, None)
    assert Signo.SIGUSR1 not in thread.blocked()


def test_resethand_restores_default_disposition():
    proc, thread, tf = _setup(flags=SignalActionFlags.RESETHAND)
    thread.send_signal(SignalInfo(Signo.SIGUSR1))
    thread.check_signals(tf, None)
    assert proc.actions[Signo.SIGUSR1].disposition.kind is DispositionKind.DEFAULT


def test_restore_blocked_argument_is_restored():
    _, thread, tf = _setup()
    thread.send_signal(SignalInfo(Signo.SIGUSR1))
    thread.check_signals(tf, SignalSet([Signo.SIGINT]))
    thread.restore(tf)
    assert list(thread.blocked()) == [Signo.SIGINT]


def test_alternate_stack_used_with_onstack():
    _, thread, tf = _setup(flags=SignalActionFlags.ONSTACK)
    alt_top = 0x40000

    def enable(stack):
        stack.sp = alt_top
        stack.size = 0x1000
        stack.flags = 0

    thread.with_stack(enable)
    assert not thread.stack().disabled()
    thread.send_signal(SignalInfo(Signo.SIGUSR1))
    thread.check_signals(tf, None)
    assert alt_top - SignalFrame.SIZE - SignalFrame.ALIGN < tf.sp <= alt_top - SignalFrame.SIZE


def test_default_terminate():
    _, thread, tf = _setup()
    before = tf.copy()
    thread.send_signal(SignalInfo(Signo.SIGTERM))
    assert thread.check_signals(tf, None) == (SignalInfo(Signo.SIGTERM), SignalOSAction.TERMINATE)
    assert tf == before


def test_ignored_signals_are_consumed():
    proc, thread, tf = _setup()
    proc.actions[Signo.SIGINT] = SignalAction(disposition=SignalDisposition.ignore())
    thread.send_signal(SignalInfo(Signo.SIGCHLD))
    thread.send_signal(SignalInfo(Signo.SIGINT))
    assert thread.check_signals(tf, None) is None
    assert thread.pending().is_empty()


def test_blocked_signal_stays_pending():
    _, thread, tf = _setup()
    thread.with_blocked(lambda s: s.add(Signo.SIGTERM))
    thread.send_signal(SignalInfo(Signo.SIGTERM))
    assert thread.check_signals(tf, None) is None
    assert Signo.SIGTERM in thread.pending()


def test_process_signal_delivered_to_thread():
    proc, thread, tf = _setup()
    proc.send_signal(SignalInfo(Signo.SIGSTOP))
    assert thread.check_signals(tf, None) == (SignalInfo(Signo.SIGSTOP), SignalOSAction.STOP)


def test_pending_is_union_of_thread_and_process():
    proc, thread, _ = _setup()
    proc.send_signal(SignalInfo(Signo.SIGINT))
    thread.send_signal(SignalInfo(Signo.SIGHUP))
    assert set(thread.pending()) == {Signo.SIGINT, Signo.SIGHUP}


def test_restore_without_frame_raises():
    _, thread, tf = _setup()
    with pytest.raises(ValueError):
        thread.restore(tf)


def test_wait_timeout_returns_pending_blocked_signal():
    _, thread, _ = _setup()
    thread.with_blocked(lambda s: s.add(Signo.SIGUSR2))
    thread.send_signal(SignalInfo(Signo.SIGUSR2, 9))
    got = thread.wait_timeout(SignalSet([Signo.SIGUSR2]), 0.01)
    assert got == SignalInfo(Signo.SIGUSR2, 9)


def test_wait_timeout_ignores_unblocked_signals():
    _, thread, _ = _setup()
    thread.send_signal(SignalInfo(Signo.SIGUSR2))
    assert thread.wait_timeout(SignalSet([Signo.SIGUSR2]), 0.02) is None
    assert Signo.SIGUSR2 in thread.pending()


def test_wait_timeout_wakes_on_later_signal():
    proc, thread, _ = _setup()
    thread.with_blocked(lambda s: s.add(Signo.SIGUSR2))
    timer = threading.Timer(0.1, proc.send_signal, args=(SignalInfo(Signo.SIGUSR2),))
    timer.start()
    got = thread.wait_timeout(SignalSet([Signo.SIGUSR2]), 5.0)
    timer.join()
    assert got == SignalInfo(Signo.SIGUSR2)
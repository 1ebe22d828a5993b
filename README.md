# sigkernel

Signal management for kernels, emulators and other code that has to deliver
POSIX-style signals to the programs it runs. It models the Linux signal
machinery:

- signal numbers and their default actions
- 64-bit signal sets
- `sigaction` records
- per-signal pending queues
- the signal frame that is set up when a user handler runs

The package has no dependencies outside the standard library.

## Installation

```
pip install sigkernel
```

To run the test suite:

```
pip install "sigkernel[test]"
pytest
```

## Modules

### `sigkernel.signals`

- `Signo` is an `IntEnum` of the signal numbers 1–64. It has two methods:
  - `is_realtime()` is true from `SIGRTMIN` (32) upwards.
  - `default_action()` returns a `DefaultSignalAction`: `TERMINATE`, `IGNORE`, `CORE_DUMP`, `STOP` or `CONTINUE`.
- `SignalSet` is a 64-bit mask. You can build it from an integer or from an iterable of signal numbers.
  - It supports `add`, `remove`, `in`, `|`, `&`, `~`, `|=`, `&=`, iteration, `len`, `int()` and `copy()`.
  - `add` and `remove` return whether the set changed.
  - `dequeue(mask)` removes and returns the lowest-numbered signal that is also in `mask`.
- `SignalInfo(signo, code)` holds the `siginfo` data: the signal number and a 32-bit code.
- `SignalStack(sp, flags, size)` is an alternate signal stack. It is disabled by default, with `flags == SS_DISABLE`.
- `SignalActionFlags` holds the flags `SIGINFO`, `NODEFER`, `RESETHAND`, `RESTART`, `ONSTACK` and `RESTORER`, with their kernel values.
- `SignalDisposition` is one of three things, chosen by its `kind` (`DispositionKind`):
  - `SignalDisposition.default()`
  - `SignalDisposition.ignore()`
  - `SignalDisposition.handler_at(address)`
- `SignalAction` combines flags, a mask, a disposition and an optional restorer address.
  - `to_raw()` converts it to a `KernelSigaction` record, which uses plain integers for the handler, flags, restorer and mask.
  - `SignalAction.from_raw()` converts back. It raises `OSError` with `errno.EINVAL` for unknown flag bits. It keeps the restorer only when the `RESTORER` flag is set.

### `sigkernel.pending`

`PendingSignals` records signals that have been delivered but not yet handled.

- A standard signal can be pending at most once. `put_signal` returns `False` when the signal is already pending, and the new one is dropped.
- Real-time signals queue in FIFO order.
- `dequeue_signal(mask)` takes the lowest-numbered pending signal in `mask`.

### `sigkernel.context`

- `TrapFrame` is a generic register frame made of a `pc` and 32 registers.
  - It has properties for `sp`, `ra`, `arg0`, `arg1` and `arg2`.
- `MContext` captures the registers of a trap frame and can write them back with `restore(tf)`.
- `UContext.from_trap_frame(tf, sigmask)` builds the user context passed to a handler. It contains the machine context and the signal mask to restore.
- `signal_trampoline_address()` returns the fixed address used for the trampoline page that issues `rt_sigreturn`.

### `sigkernel.process`

- `WaitQueue` is a thread wait queue built on `threading.Condition`.
  - Its methods are `wait_timeout(seconds)`, `wait()`, `notify_one()` and `notify_all()`.
- `SignalActions` is the per-process table of 64 `SignalAction`s, indexed by signal number. It carries an `RLock` as `lock`.
- `ProcessSignalManager` holds the signals pending for the whole process, the action table, the wait queue and the default restorer address. Its methods:
  - `send_signal` queues a signal and wakes one waiter.
  - `pending()` returns the signals pending for the process.
  - `dequeue_signal(mask)` removes and returns the next pending signal in `mask`.
  - `wait_signal()` blocks until a signal is sent.

### `sigkernel.thread`

`ThreadSignalManager` manages the signals of one thread.

- It keeps the thread's own pending signals, its blocked set and its alternate stack.
  - `blocked()` and `stack()` return copies.
  - `with_blocked(func)` and `with_stack(func)` let `func` change them under their locks.
- `send_signal` queues a signal for this thread and wakes all waiters.
- `pending()` returns the union of the thread's pending signals and the process's.
- `check_signals(tf, restore_blocked=None)` takes unblocked pending signals. It looks at the thread's own signals first, then at the process's, lowest number first in each. What happens next depends on the signal's disposition:
  - Default: it returns the matching `SignalOSAction` (`TERMINATE`, `CORE_DUMP`, `STOP` or `CONTINUE`) for the caller to carry out. Default-ignored signals are skipped.
  - Ignore: the signal is skipped.
  - Handler: it builds a `SignalFrame` and points the trap frame at the handler. The stack pointer is aligned below the current stack, or below the alternate stack when `ONSTACK` is set and the stack is enabled. The arguments are the signal number, the `siginfo` address and the `ucontext` address. The return address is the restorer.
- After setting up a handler, `check_signals` blocks the action's mask and the signal itself (unless `NODEFER` is set). It resets the action when `RESETHAND` is set, and returns `SignalOSAction.HANDLER`.
- It returns `None` when no pending signal needs anything from the OS.
- `restore(tf)` performs `sigreturn`. It puts back the registers and the blocked set saved in the frame at `tf.sp`, and raises `ValueError` if there is none.
- `wait_timeout(set, timeout=None)` waits for a signal that is in `set` and is also blocked, with the timeout given in seconds. It returns the signal, or `None` on timeout.

## Example

```python
from sigkernel.signals import Signo, SignalSet, SignalInfo
from sigkernel.pending import PendingSignals

pending = PendingSignals()
pending.put_signal(SignalInfo(Signo.SIGUSR1, 0))
pending.put_signal(SignalInfo(Signo.SIGUSR1, 0))   # merged: returns False

everything = ~SignalSet()
info = pending.dequeue_signal(everything)
assert info.signo is Signo.SIGUSR1
assert pending.dequeue_signal(everything) is None
```

## What it does not do

- The package does not touch real memory or real registers. Signal frames are kept inside the `ThreadSignalManager`, keyed by the stack address they would occupy, and `restore` looks them up there.
- `TrapFrame` is one generic 32-register layout, not the register layout of any particular CPU.
- The trampoline is only an address, not code.
- `wait_timeout` does not report interruption: it simply returns `None` when the time runs out.
"""POSIX-style signal sets, actions, pending queues, signal frames and per-thread delivery."""

__version__ = "0.1.0"

__all__ = ["signals", "pending", "context", "process", "thread"]
"""Allocation tracing for the array core.

Only meant for debugging. Once installed, every block handed out by
`array_data.allocate` is logged together with its address, size and
alignment, and so is its release. Nothing is traced until `install` is
called.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)

_guard = threading.local()


def run_guarded(fn: Callable[[], None]) -> None:
    """Run `fn` unless a guarded call is already running on this thread.

    Prevents the log sink from recursing into the tracer (allocation -> log
    -> allocation -> log ...).
    """
    if getattr(_guard, "active", False):
        return
    _guard.active = True
    try:
        fn()
    finally:
        _guard.active = False


def _describe(address: int, size: int, align: int) -> str:
    return f"[address={address:#x}, size={size:#04x}, align={align:#04x}]"


class AllocationTracer:
    """Counts and logs block allocations and releases."""

    def __init__(self) -> None:
        self.allocations = 0
        self.releases = 0
        self.failures = 0

    @property
    def live(self) -> int:
        """Number of blocks allocated but not yet released."""
        return self.allocations - self.releases

    def on_alloc(self, block: np.ndarray) -> None:
        address = block.__array_interface__["data"][0]
        size = block.nbytes
        align = block.dtype.alignment
        self.allocations += 1
        run_guarded(lambda: logger.debug("%-15s %s", "alloc", _describe(address, size, align)))
        weakref.finalize(block, self.on_release, address, size, align)

    def on_release(self, address: int, size: int, align: int) -> None:
        self.releases += 1
        run_guarded(lambda: logger.debug("%-15s %s", "dealloc", _describe(address, size, align)))

    def on_failed_alloc(self, size: int, align: int) -> None:
        self.failures += 1
        run_guarded(lambda: logger.warning("%-15s %s", "failed alloc", _describe(0, size, align)))


_tracer: Optional[AllocationTracer] = None


def install(tracer: Optional[AllocationTracer] = None) -> AllocationTracer:
    """Start tracing allocations, returning the active tracer."""
    global _tracer
    _tracer = tracer if tracer is not None else AllocationTracer()
    return _tracer


def uninstall() -> Optional[AllocationTracer]:
    """Stop tracing. Blocks allocated while installed still report their release."""
    global _tracer
    tracer, _tracer = _tracer, None
    return tracer


def installed() -> Optional[AllocationTracer]:
    return _tracer

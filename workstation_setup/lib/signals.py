from __future__ import annotations

import signal
from contextlib import contextmanager
from typing import Dict, Iterator, Sequence

from ..errors import RunInterrupted

INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


def _raise_interrupted(signum, frame) -> None:
    raise RunInterrupted(signum)


@contextmanager
def interrupt_signals(signals: Sequence[int] = INTERRUPT_SIGNALS) -> Iterator[None]:
    """Turn termination signals into RunInterrupted for the duration of the block.

    The exception is raised in the main thread at whatever blocking call is in
    progress, so ``finally`` blocks and context managers on the stack run
    before the process exits. Previous handlers are restored on exit.
    """

    previous: Dict[int, object] = {}
    for sig in signals:
        previous[sig] = signal.signal(sig, _raise_interrupted)
    try:
        yield
    finally:
        for sig, handler in previous.items():
            # None means the handler was not installed from Python.
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)


@contextmanager
def deferred(signals: Sequence[int] = INTERRUPT_SIGNALS) -> Iterator[None]:
    """Hold back delivery of ``signals`` until the block finishes.

    A signal that arrives meanwhile is delivered (and handled) on exit.
    """

    previous_mask = signal.pthread_sigmask(signal.SIG_BLOCK, signals)
    try:
        yield
    finally:
        signal.pthread_sigmask(signal.SIG_SETMASK, previous_mask)

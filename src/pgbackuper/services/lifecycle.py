"""Signal handling for graceful and forced shutdown."""

import os
import signal
import threading
from typing import Callable, Iterable, Optional


class ShutdownSignal:
    """Cancellation token driven by process signals.

    The first signal requests a graceful stop; the second one terminates the
    process immediately, whatever is still running.
    """

    DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self, logger, exit_func: Callable[[int], None] = os._exit, signal_module=signal):
        self.logger = logger
        self.exit_func = exit_func
        self.signal = signal_module
        self._event = threading.Event()
        self._received = 0

    @property
    def requested(self) -> bool:
        return self._event.is_set()

    def install(self, signals: Optional[Iterable[int]] = None):
        for signum in signals or self.DEFAULT_SIGNALS:
            self.signal.signal(signum, self.handle)

    def handle(self, signum, _frame=None):
        self._received += 1
        name = self._signal_name(signum)

        if self._received == 1:
            self.logger.info("Received %s, stopping. Send it again to force exit.", name)
            self._event.set()
            return

        self.logger.warning("Received %s again, exiting immediately.", name)
        self.exit_func(1)

    def request_stop(self):
        self._event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    @staticmethod
    def _signal_name(signum) -> str:
        try:
            return signal.Signals(signum).name
        except ValueError:
            return str(signum)

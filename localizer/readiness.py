import logging
import threading
import time

from .errors import NotReadyError, ShutdownError

logger = logging.getLogger(__name__)


class ReadinessGate:
    """Barrier on two conditions: prior map received and position fix received.

    Waiters block on a condition variable and are woken by the arrival
    handlers (or :meth:`cancel`), so nothing spins while the data is missing.
    """

    def __init__(self, warn_interval=1.0):
        self.warn_interval = warn_interval
        self._cond = threading.Condition()
        self._map_ready = False
        self._fix_ready = False
        self._cancelled = False

    @property
    def map_ready(self):
        return self._map_ready

    @property
    def fix_ready(self):
        return self._fix_ready

    @property
    def is_ready(self):
        return self._map_ready and self._fix_ready

    @property
    def cancelled(self):
        return self._cancelled

    def set_map_ready(self):
        with self._cond:
            self._map_ready = True
            self._cond.notify_all()

    def set_fix_ready(self):
        with self._cond:
            self._fix_ready = True
            self._cond.notify_all()

    def cancel(self):
        with self._cond:
            self._cancelled = True
            self._cond.notify_all()

    def _warn_missing(self):
        if not self._map_ready:
            logger.warning("waiting for map data ...")
        if not self._fix_ready:
            logger.warning("waiting for gps data ...")

    def wait(self, timeout=None):
        """Block until both conditions hold.

        Raises
        ------
        NotReadyError
            *timeout* seconds passed first (``None`` waits forever).
        ShutdownError
            :meth:`cancel` was called.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not (self.is_ready or self._cancelled):
                self._warn_missing()
                slice_s = self.warn_interval
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        missing = [name for name, ok in (("map", self._map_ready),
                                                         ("fix", self._fix_ready)) if not ok]
                        raise NotReadyError(
                            f"not ready after {timeout:.1f}s, missing: {', '.join(missing)}"
                        )
                    slice_s = remaining if slice_s is None else min(slice_s, remaining)
                self._cond.wait(slice_s)
            if self._cancelled:
                raise ShutdownError("readiness wait cancelled")

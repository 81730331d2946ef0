"""Per-client sliding-window rate limiting."""

import logging
import threading
import time

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Counts requests per client over a trailing time window.

    A call to check() both tests and consumes a slot, under one lock, so
    concurrent requests from the same client cannot overshoot the limit.
    """

    def __init__(self, max_requests: int = 10, window_seconds: float = 60, clock=time.time):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, list[float]] = {}
        self._lock = threading.Lock()
        self._sweeper: threading.Thread | None = None
        self._stop = threading.Event()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _recent(self, timestamps: list[float], now: float) -> list[float]:
        return [t for t in timestamps if now - t < self.window_seconds]

    def check(self, client_id: str) -> bool:
        """Returns True and records the attempt if the client is under its limit."""
        with self._lock:
            now = self._clock()
            timestamps = self._recent(self._windows.get(client_id, []), now)

            if len(timestamps) >= self.max_requests:
                self._windows[client_id] = timestamps
                logger.warning(f"Rate limit exceeded for client {client_id}")
                return False

            timestamps.append(now)
            self._windows[client_id] = timestamps
            return True

    def sweep(self) -> int:
        """Drops expired timestamps and forgets clients with none left."""
        with self._lock:
            now = self._clock()
            swept = {}
            for client_id, timestamps in self._windows.items():
                recent = self._recent(timestamps, now)
                if recent:
                    swept[client_id] = recent
            removed = len(self._windows) - len(swept)
            self._windows = swept

        if removed:
            logger.debug(f"Rate limiter sweep removed {removed} idle clients")
        return removed

    def start_sweeper(self, interval_seconds: float = 5 * 60) -> None:
        """Runs sweep() every interval on a daemon thread."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return

        self._stop.clear()

        def run():
            while not self._stop.wait(interval_seconds):
                try:
                    self.sweep()
                except Exception:
                    logger.exception("Rate limiter sweep failed")

        self._sweeper = threading.Thread(target=run, name="rate-limit-sweeper", daemon=True)
        self._sweeper.start()
        logger.info(f"Rate limiter sweeper started (every {interval_seconds}s)")

    def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._stop.set()
        self._sweeper.join(timeout=5)
        self._sweeper = None

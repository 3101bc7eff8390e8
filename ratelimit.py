import threading
import time


class RateLimiter:
    """Allow at most `max_requests` per client inside a trailing `window` (seconds)."""

    def __init__(self, max_requests: int = 10, window: float = 60, clock=time.monotonic):
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._hits: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def hit(self, client_id: str) -> bool:
        """Record a request; return True if the client is over its limit."""
        now = self._clock()
        with self._lock:
            recent = [t for t in self._hits.get(client_id, []) if now - t < self.window]
            if len(recent) >= self.max_requests:
                self._hits[client_id] = recent
                return True
            recent.append(now)
            self._hits[client_id] = recent
            return False

    def reset(self):
        with self._lock:
            self._hits.clear()

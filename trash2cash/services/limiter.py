import threading
from trash2cash.core.errors import RateLimited
from trash2cash.services.clock import SystemClock

class RateLimiter:
    def __init__(self, max_requests: int, window_seconds: int = 60, enabled: bool = True, clock=None):
        """
        Sliding-window limiter keyed by caller (client address, or kiosk id in-process).

        :param max_requests: requests allowed per key inside one window
        :param window_seconds: length of the window
        :param enabled: when False, check() never rejects
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.enabled = enabled
        self._clock = clock or SystemClock()
        self._requests = {}  # Stores key -> [timestamp1, timestamp2...]
        self._lock = threading.Lock()

    def check(self, key: str):
        """
        Records one request for `key`, raising RateLimited once the burst is spent.
        """
        if not self.enabled:
            return

        now = self._clock.now()

        with self._lock:
            self._prune(now)

            # Filter out requests older than the window
            recent = [t for t in self._requests.get(key, []) if now - t < self.window_seconds]

            # Check count
            if len(recent) >= self.max_requests:
                self._requests[key] = recent
                raise RateLimited("Too many session requests. Please wait.")

            # Add current request
            recent.append(now)
            self._requests[key] = recent

    def _prune(self, now: float):
        # Forget keys with nothing left inside the window
        idle = [k for k, times in self._requests.items() if not times or now - times[-1] >= self.window_seconds]
        for k in idle:
            del self._requests[k]

    def reset(self, key: str | None = None):
        with self._lock:
            if key is None:
                self._requests.clear()
            else:
                self._requests.pop(key, None)

    def __len__(self):
        with self._lock:
            return len(self._requests)

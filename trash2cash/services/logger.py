import csv
import os
import threading
import time

HEADER = ["timestamp", "event_type", "session_id", "outcome", "latency_ms"]

class EventLog:
    """Append-only CSV trail of session and submission events.

    A `None` path turns the log into a no-op.
    """

    def __init__(self, path: str | None = None):
        self.path = path
        self._lock = threading.Lock()

        # Initialize CSV with headers if it doesn't exist
        if path and not os.path.exists(path):
            with open(path, "w", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(HEADER)

    def log_event(self, event_type: str, session_id: str, outcome: str, latency_ms: int = 0):
        if not self.path:
            return
        with self._lock, open(self.path, "a", newline="") as f:
            writer = csv.writer(f)
            writer.writerow([time.time(), event_type, session_id, outcome, latency_ms])

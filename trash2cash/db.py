import threading
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

class InMemoryDB:
    """Balances and submission history behind one re-entrant lock.

    Writers go through `transaction()`: the lock is held for the whole unit
    and every registered undo action is replayed (newest first) if any step
    raises, so readers holding the lock never see a half-applied write.
    """

    def __init__(self):
        # user_id -> balance
        self.balances: Dict[str, float] = {}

        # user_id -> [Submission, ...] oldest first
        self.submissions: Dict[str, list] = {}

        # submission ids that have already been credited
        self.credited_submissions: set = set()

        self.lock = threading.RLock()
        self._undo_log: Optional[List[Callable[[], None]]] = None

    @contextmanager
    def transaction(self):
        with self.lock:
            if self._undo_log is not None:
                # Nested: the outermost transaction owns commit/rollback.
                yield
                return

            self._undo_log = []
            try:
                yield
            except BaseException:
                for undo in reversed(self._undo_log):
                    undo()
                raise
            finally:
                self._undo_log = None

    def on_rollback(self, undo: Callable[[], None]) -> None:
        if self._undo_log is None:
            raise RuntimeError("on_rollback() called outside a transaction")
        self._undo_log.append(undo)

import logging

from trash2cash.core.errors import InvalidInput, NotFound
from trash2cash.db import InMemoryDB

logger = logging.getLogger(__name__)


class BalanceLedger:
    """Sole writer of user balances."""

    def __init__(self, db: InMemoryDB):
        self.db = db

    def open_account(self, user_id: str) -> bool:
        """Create a zero-balance account. Returns False if it already existed."""
        if not user_id:
            raise InvalidInput("User id is required")
        with self.db.transaction():
            if user_id in self.db.balances:
                return False
            self.db.balances[user_id] = 0.0
            self.db.submissions[user_id] = []
            self.db.on_rollback(lambda: self._close(user_id))
        logger.info(f"Account opened: user={user_id}")
        return True

    def _close(self, user_id: str) -> None:
        self.db.balances.pop(user_id, None)
        self.db.submissions.pop(user_id, None)

    def has_account(self, user_id: str) -> bool:
        with self.db.lock:
            return user_id in self.db.balances

    def balance_of(self, user_id: str) -> float:
        with self.db.lock:
            if user_id not in self.db.balances:
                raise NotFound("User not found")
            return self.db.balances[user_id]

    def credit_once(self, user_id: str, submission_id: str, amount: float) -> bool:
        """
        Credit `amount` for `submission_id`.

        Returns False, leaving the balance untouched, when that submission was
        already credited. Joins the caller's transaction when one is open.
        """
        if amount < 0:
            raise InvalidInput("Credit amount must be non-negative")

        with self.db.transaction():
            if user_id not in self.db.balances:
                raise NotFound("User not found")
            if submission_id in self.db.credited_submissions:
                logger.warning(f"Duplicate credit refused: user={user_id}, submission={submission_id}")
                return False

            previous = self.db.balances[user_id]
            self.db.balances[user_id] = previous + amount
            self.db.credited_submissions.add(submission_id)

            def undo() -> None:
                self.db.balances[user_id] = previous
                self.db.credited_submissions.discard(submission_id)

            self.db.on_rollback(undo)
        return True

# Submission reward pipeline: validate a reading, price it, then record the
# submission and credit the user in one transaction.

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from trash2cash.core.errors import CommitFailed, NotFound, StationError
from trash2cash.db import InMemoryDB
from trash2cash.services.clock import SystemClock, new_submission_id
from trash2cash.services.ledger import BalanceLedger
from trash2cash.services.logger import EventLog
from trash2cash.services.rewards import RewardCalculator, validate_material, validate_weight

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Submission:
    id: str
    user_id: str
    material: str
    weight: float
    reward: float
    created_at: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "material": self.material,
            "weight": self.weight,
            "reward": self.reward,
            "createdAt": datetime.fromtimestamp(self.created_at, tz=timezone.utc).isoformat(),
        }


class SubmissionRewardPipeline:
    def __init__(self, db: InMemoryDB, ledger: BalanceLedger, calculator: RewardCalculator,
                 clock=None, event_log: EventLog | None = None):
        self.db = db
        self.ledger = ledger
        self.calculator = calculator
        self._clock = clock or SystemClock()
        self.event_log = event_log or EventLog()

    def accept_reading(self, user_id: str, material: object, weight: object) -> Submission:
        material = validate_material(material)
        weight = validate_weight(weight)
        reward = self.calculator.reward(material, weight)

        submission = Submission(
            id=new_submission_id(),
            user_id=user_id,
            material=material,
            weight=weight,
            reward=reward,
            created_at=self._clock.now(),
        )

        try:
            with self.db.transaction():
                self._append(submission)
                if not self.ledger.credit_once(user_id, submission.id, reward):
                    raise RuntimeError(f"Submission {submission.id} was already credited")
        except StationError:
            raise
        except Exception as exc:
            logger.error(f"Submission rolled back: user={user_id}, material={material}, weight={weight}",
                         exc_info=True)
            self.event_log.log_event("accept_reading", submission.id, "commit_failed")
            raise CommitFailed("Failed to record submission. Please try again.") from exc

        logger.info(f"Submission committed: user={user_id}, material={material}, "
                    f"weight={weight}, reward={reward}")
        self.event_log.log_event("accept_reading", submission.id, "committed")
        return submission

    def _append(self, submission: Submission) -> None:
        history = self.db.submissions.get(submission.user_id)
        if history is None:
            raise NotFound("User not found")
        history.append(submission)
        self.db.on_rollback(lambda: history.remove(submission))

    def list_submissions(self, user_id: str) -> list[Submission]:
        """Newest first."""
        with self.db.lock:
            history = self.db.submissions.get(user_id)
            if history is None:
                raise NotFound("User not found")
            return list(reversed(history))

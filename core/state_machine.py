"""
Draft state machine: the single table of legal status transitions.

    pending ──start──▶ active ──last pick──▶ completed
       │                │  ▲
       │             pause resume
       │                ▼  │
       │               paused
       └──────cancel─────┴───────────▶ cancelled

Reset (back to pending) is not a transition of this table: it is a
confirmed, destructive operation handled by the draft manager.
"""
import logging

from sqlalchemy.orm import Session

from models import Draft, DraftStatus, EventLog, utcnow
from core.exceptions import InvalidStateTransition

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    DraftStatus.PENDING: {DraftStatus.ACTIVE, DraftStatus.CANCELLED},
    DraftStatus.ACTIVE: {DraftStatus.PAUSED, DraftStatus.COMPLETED, DraftStatus.CANCELLED},
    DraftStatus.PAUSED: {DraftStatus.ACTIVE, DraftStatus.CANCELLED},
    DraftStatus.COMPLETED: set(),
    DraftStatus.CANCELLED: set(),
}


class DraftStateMachine:

    @staticmethod
    def can_transition(current: DraftStatus, target: DraftStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[current]

    @staticmethod
    def transition(draft: Draft, target: DraftStatus, db: Session) -> Draft:
        """
        Move a (locked) draft to a new status and record the change.

        Args:
            draft: Draft loaded inside the caller's critical section
            target: new status
            db: SQLAlchemy Session

        Returns:
            the same Draft, mutated

        Raises:
            InvalidStateTransition: target is not reachable from the current status
        """
        current = draft.status
        if not DraftStateMachine.can_transition(current, target):
            raise InvalidStateTransition(
                f"Cannot move draft from {current.value} to {target.value}"
            )

        draft.status = target
        draft.last_activity = utcnow()

        db.add(EventLog(
            draft_id=draft.id,
            event_type="DRAFT_STATE_CHANGED",
            data={"from": current.value, "to": target.value}
        ))

        logger.info(f"Draft {draft.id}: {current.value} -> {target.value}")
        return draft

"""Tests for the draft status transition table."""

import pytest

from models import Draft, DraftStatus, EventLog
from core.exceptions import InvalidStateTransition
from core.state_machine import DraftStateMachine


class TestTransitionTable:
    """Tests for can_transition."""

    @pytest.mark.parametrize("current, target", [
        (DraftStatus.PENDING, DraftStatus.ACTIVE),
        (DraftStatus.PENDING, DraftStatus.CANCELLED),
        (DraftStatus.ACTIVE, DraftStatus.PAUSED),
        (DraftStatus.ACTIVE, DraftStatus.COMPLETED),
        (DraftStatus.ACTIVE, DraftStatus.CANCELLED),
        (DraftStatus.PAUSED, DraftStatus.ACTIVE),
        (DraftStatus.PAUSED, DraftStatus.CANCELLED),
    ])
    def test_allowed(self, current, target):
        assert DraftStateMachine.can_transition(current, target)

    @pytest.mark.parametrize("current, target", [
        (DraftStatus.PENDING, DraftStatus.COMPLETED),
        (DraftStatus.PENDING, DraftStatus.PAUSED),
        (DraftStatus.PAUSED, DraftStatus.COMPLETED),
        (DraftStatus.COMPLETED, DraftStatus.CANCELLED),
        (DraftStatus.COMPLETED, DraftStatus.ACTIVE),
        (DraftStatus.CANCELLED, DraftStatus.ACTIVE),
        (DraftStatus.CANCELLED, DraftStatus.PENDING),
    ])
    def test_forbidden(self, current, target):
        assert not DraftStateMachine.can_transition(current, target)


class TestTransition:
    """Tests for transition() on a persisted draft."""

    def test_transition_records_event(self, db):
        """A legal transition updates the status and logs the change."""
        draft = Draft(league_id="league-1", status=DraftStatus.PENDING)
        db.add(draft)
        db.flush()

        DraftStateMachine.transition(draft, DraftStatus.ACTIVE, db)
        db.commit()

        assert draft.status == DraftStatus.ACTIVE
        event = db.query(EventLog).filter(EventLog.draft_id == draft.id).one()
        assert event.event_type == "DRAFT_STATE_CHANGED"
        assert event.data == {"from": "pending", "to": "active"}

    def test_illegal_transition_raises(self, db):
        """An illegal transition leaves the draft untouched."""
        draft = Draft(league_id="league-1", status=DraftStatus.COMPLETED)
        db.add(draft)
        db.flush()

        with pytest.raises(InvalidStateTransition) as excinfo:
            DraftStateMachine.transition(draft, DraftStatus.ACTIVE, db)

        assert excinfo.value.code == "invalid_state_transition"
        assert draft.status == DraftStatus.COMPLETED

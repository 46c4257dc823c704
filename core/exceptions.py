"""
Custom exceptions.

All draft business errors live here so the API layer can map them in one
place. Three families:

- DraftNotFound: the aggregate does not exist
- DraftRejection: an expected precondition violation; nothing was mutated and
  the caller decides whether to re-prompt
- DraftConsistencyError: the aggregate contradicts its own invariants; the
  draft is halted until someone inspects it
"""


class DraftError(Exception):
    """Base class of every draft error"""
    pass


class DraftNotFound(DraftError):
    expected = True

    def __init__(self, draft_id):
        self.draft_id = draft_id
        super().__init__(f"Draft {draft_id} not found")


# ============ Precondition violations ============

class DraftRejection(DraftError):
    """
    A request that was refused before any mutation.

    code is stable and machine readable; the message is meant to be shown to
    the participant as is.
    """
    code = "rejected"
    status_code = 400
    expected = True

    def to_dict(self) -> dict:
        return {"code": self.code, "message": str(self)}


class DraftNotActive(DraftRejection):
    code = "draft_not_active"
    status_code = 409


class DraftHalted(DraftRejection):
    code = "draft_halted"
    status_code = 409


class NotYourTurn(DraftRejection):
    code = "not_your_turn"
    status_code = 409


class SequenceMismatch(DraftRejection):
    """The caller acted on a turn that has already moved on"""
    code = "sequence_mismatch"
    status_code = 409


class InvalidCategory(DraftRejection):
    code = "invalid_category"


class CategoryAlreadyFilled(DraftRejection):
    code = "category_already_filled"


class EntityNotInPool(DraftRejection):
    code = "entity_not_in_pool"


class EntityAlreadyDrafted(DraftRejection):
    code = "entity_already_drafted"


class InvalidStateTransition(DraftRejection):
    code = "invalid_state_transition"
    status_code = 409


class ResetNotConfirmed(DraftRejection):
    code = "reset_not_confirmed"


class InvalidParticipantCount(DraftRejection):
    code = "invalid_participant_count"


class InvalidDraftSettings(DraftRejection):
    code = "invalid_draft_settings"


class AutoPickDisabled(DraftRejection):
    code = "auto_pick_disabled"


# ============ Consistency violations ============

class DraftConsistencyError(DraftError):
    """Fatal for the draft instance: further mutation is refused until reset"""
    def __init__(self, draft_id, reason):
        self.draft_id = draft_id
        self.reason = reason
        super().__init__(f"Draft {draft_id} is inconsistent: {reason}")

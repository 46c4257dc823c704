"""
Draft history service.

Builds the read-only views of a draft's pick log: the board (picks grouped
by round) and one participant's picks, so the frontend can render the
authoritative record without replaying events client-side.
"""
from typing import Any, Dict, List

from models import Draft, DraftPick
from schemas import DraftSettings


def get_draft_board(draft: Draft) -> List[Dict[str, Any]]:
    """
    Return one entry per round (1..total rounds), each with that round's
    picks in sequence order. Rounds not reached yet have an empty pick list.
    """
    total_rounds = DraftSettings.model_validate(draft.settings or {}).total_rounds
    rounds: Dict[int, List[DraftPick]] = {number: [] for number in range(1, total_rounds + 1)}

    for pick in draft.picks:
        rounds.setdefault(pick.round, []).append(pick)

    return [
        {"round": number, "picks": sorted(picks, key=lambda p: p.sequence_number)}
        for number, picks in sorted(rounds.items())
    ]


def get_participant_picks(draft: Draft, participant_id: str) -> List[DraftPick]:
    return [pick for pick in draft.picks if pick.participant_id == participant_id]

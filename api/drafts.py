"""
Draft API Endpoints

Key points:
1. All business logic lives in DraftManager; endpoints only translate
2. Rejections are returned verbatim as {code, message}
3. Live updates go out over the /ws channel, these endpoints never push
"""
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import (
    AutoPickSubmit,
    AvailableEntitiesResponse,
    AvailableEntity,
    BoardRound,
    DraftBoardResponse,
    DraftCreate,
    DraftResponse,
    LeaderboardResponse,
    PickResponse,
    PickSubmit,
    ResetRequest,
)
from core.draft_manager import DraftManager
from core.exceptions import DraftConsistencyError, DraftError, DraftNotFound, DraftRejection
from services.captions import parse_category
from api.dependencies import get_draft_manager
from api.scores import to_score_response

router = APIRouter(prefix="/api/drafts", tags=["drafts"])
logger = logging.getLogger(__name__)


def _http_error(e: DraftError) -> HTTPException:
    if isinstance(e, DraftNotFound):
        return HTTPException(status_code=404, detail="Draft not found")
    if isinstance(e, DraftRejection):
        return HTTPException(status_code=e.status_code, detail=e.to_dict())
    if isinstance(e, DraftConsistencyError):
        return HTTPException(status_code=409, detail={"code": "draft_inconsistent", "message": str(e)})
    return HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=DraftResponse, status_code=201)
def create_draft(
    draft_data: DraftCreate,
    db: Session = Depends(get_db),
    manager: DraftManager = Depends(get_draft_manager)
):
    """
    Create a draft (commissioner endpoint)

    The draft starts pending. Without an explicit draft_order the order is
    generated from the league roster when the draft starts.
    """
    try:
        draft = manager.create_draft(
            db,
            draft_data.league_id,
            settings=draft_data.settings,
            draft_order=draft_data.draft_order
        )
        return DraftResponse.model_validate(draft)

    except DraftError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to create draft: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{draft_id}", response_model=DraftResponse)
def get_draft(draft_id: str, db: Session = Depends(get_db), manager: DraftManager = Depends(get_draft_manager)):
    try:
        return DraftResponse.model_validate(manager.get_draft(db, draft_id))

    except DraftError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to get draft: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


def _lifecycle(operation: str, draft_id: str, db: Session, manager: DraftManager) -> DraftResponse:
    try:
        draft = getattr(manager, f"{operation}_draft")(db, draft_id)
        logger.info(f"Draft {draft_id}: {operation} ok")
        return DraftResponse.model_validate(draft)

    except DraftError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to {operation} draft: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{draft_id}/start", response_model=DraftResponse)
def start_draft(draft_id: str, db: Session = Depends(get_db), manager: DraftManager = Depends(get_draft_manager)):
    """
    Start the draft (commissioner endpoint, pending -> active)

    Broadcasts draft-started with the first picker.
    """
    return _lifecycle("start", draft_id, db, manager)


@router.post("/{draft_id}/pause", response_model=DraftResponse)
def pause_draft(draft_id: str, db: Session = Depends(get_db), manager: DraftManager = Depends(get_draft_manager)):
    return _lifecycle("pause", draft_id, db, manager)


@router.post("/{draft_id}/resume", response_model=DraftResponse)
def resume_draft(draft_id: str, db: Session = Depends(get_db), manager: DraftManager = Depends(get_draft_manager)):
    return _lifecycle("resume", draft_id, db, manager)


@router.post("/{draft_id}/cancel", response_model=DraftResponse)
def cancel_draft(draft_id: str, db: Session = Depends(get_db), manager: DraftManager = Depends(get_draft_manager)):
    return _lifecycle("cancel", draft_id, db, manager)


@router.post("/{draft_id}/reset", response_model=DraftResponse)
def reset_draft(
    draft_id: str,
    reset_data: ResetRequest,
    db: Session = Depends(get_db),
    manager: DraftManager = Depends(get_draft_manager)
):
    """
    Reset the draft (commissioner endpoint)

    Discards every pick. The client must send confirm=true; the UI is
    responsible for asking the commissioner first.
    """
    try:
        draft = manager.reset_draft(
            db,
            draft_id,
            confirm=reset_data.confirm,
            regenerate_order=reset_data.regenerate_order
        )
        return DraftResponse.model_validate(draft)

    except DraftError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to reset draft: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{draft_id}/pick", response_model=PickResponse)
def submit_pick(
    draft_id: str,
    pick_data: PickSubmit,
    db: Session = Depends(get_db),
    manager: DraftManager = Depends(get_draft_manager)
):
    """
    Submit a pick

    Flow:
    1. DraftManager validates turn, category and uniqueness under the draft lock
    2. The pick is committed
    3. pick-made goes out on the draft channel

    Returns:
        the accepted pick
    """
    try:
        logger.info(
            f"Pick request in draft {draft_id}: {pick_data.participant_id} -> "
            f"{pick_data.entity} ({pick_data.category})"
        )
        pick = manager.request_pick(
            db,
            draft_id,
            pick_data.participant_id,
            pick_data.category,
            pick_data.entity,
            expected_sequence=pick_data.expected_sequence
        )
        return PickResponse.model_validate(pick)

    except DraftError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to submit pick: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{draft_id}/auto-pick", response_model=PickResponse)
def auto_pick(
    draft_id: str,
    pick_data: Optional[AutoPickSubmit] = Body(default=None),
    db: Session = Depends(get_db),
    manager: DraftManager = Depends(get_draft_manager)
):
    """
    Auto-pick

    With a participant_id the participant asks for their own pick to be made;
    without one it is a commissioner trigger for whoever holds the turn.
    """
    pick_data = pick_data or AutoPickSubmit()
    try:
        pick = manager.auto_pick(
            db,
            draft_id,
            participant_id=pick_data.participant_id,
            expected_sequence=pick_data.expected_sequence
        )
        return PickResponse.model_validate(pick)

    except DraftError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to auto-pick: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{draft_id}/board", response_model=DraftBoardResponse)
def get_board(draft_id: str, db: Session = Depends(get_db), manager: DraftManager = Depends(get_draft_manager)):
    """
    Draft board: every round with the picks made in it
    """
    try:
        draft = manager.get_draft(db, draft_id)
        board = manager.get_board(db, draft_id)
        return DraftBoardResponse(
            draft_id=draft.id,
            board=[
                BoardRound(round=entry["round"], picks=[PickResponse.model_validate(p) for p in entry["picks"]])
                for entry in board
            ],
            current_round=draft.current_round,
            current_sequence=draft.current_sequence,
            status=draft.status,
        )

    except DraftError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to get draft board: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{draft_id}/available/{category}", response_model=AvailableEntitiesResponse)
def get_available(
    draft_id: str,
    category: str,
    db: Session = Depends(get_db),
    manager: DraftManager = Depends(get_draft_manager)
):
    """
    Entities still draftable in a category, best reference score first
    """
    try:
        available = manager.get_available(db, draft_id, category)
        return AvailableEntitiesResponse(
            category=parse_category(category),
            entities=[AvailableEntity(entity=entity, score=score) for entity, score in available],
        )

    except DraftError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to get available entities: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{draft_id}/participants/{participant_id}/picks", response_model=List[PickResponse])
def get_participant_picks(
    draft_id: str,
    participant_id: str,
    db: Session = Depends(get_db),
    manager: DraftManager = Depends(get_draft_manager)
):
    try:
        picks = manager.get_participant_picks(db, draft_id, participant_id)
        return [PickResponse.model_validate(p) for p in picks]

    except DraftError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to get participant picks: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{draft_id}/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(draft_id: str, db: Session = Depends(get_db), manager: DraftManager = Depends(get_draft_manager)):
    """
    Score the draft's picks against the season reference table
    """
    try:
        leaderboard = manager.get_leaderboard(db, draft_id)
        return LeaderboardResponse(
            draft_id=draft_id,
            leaderboard=[to_score_response(score) for score in leaderboard],
        )

    except DraftError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Failed to get leaderboard: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")

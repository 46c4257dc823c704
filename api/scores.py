"""
Score API Endpoints

Responsibilities:
1. Expose the season reference table and entity rankings
2. Score arbitrary pick records (any supported shape) on demand
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import (
    CategoryScoreResponse,
    EntityRankingResponse,
    ParticipantScoreResponse,
    ScoreCalculateRequest,
    ScoreCalculateResponse,
    ScoreRecordResponse,
)
from services.scoring_service import ParticipantScore, ScoringEngine
from api.dependencies import get_scoring_engine

router = APIRouter(prefix="/api/scores", tags=["scores"])
logger = logging.getLogger(__name__)


def to_score_response(score: ParticipantScore) -> ParticipantScoreResponse:
    return ParticipantScoreResponse(
        participant_id=score.participant_id,
        total_score=score.total_score,
        picks={category.value: entity for category, entity in score.picks.items()},
        breakdown={
            category.value: CategoryScoreResponse(entity=item.entity, score=item.score)
            for category, item in score.breakdown.items()
        },
    )


@router.get("", response_model=List[ScoreRecordResponse])
def list_scores(engine: ScoringEngine = Depends(get_scoring_engine)):
    """
    All reference score records of the loaded season, best total first.
    """
    return [
        ScoreRecordResponse(
            entity_name=record.entity_name,
            total_score=record.total_score,
            category_scores={key.value: score for key, score in record.category_scores.items()},
        )
        for record in engine.table.ranked()
    ]


@router.get("/rankings", response_model=List[EntityRankingResponse])
def get_rankings(engine: ScoringEngine = Depends(get_scoring_engine)):
    return [
        EntityRankingResponse(rank=r.rank, entity_name=r.entity_name, score=r.score)
        for r in engine.entity_rankings()
    ]


@router.post("/calculate", response_model=ScoreCalculateResponse)
def calculate_scores(request: ScoreCalculateRequest, engine: ScoringEngine = Depends(get_scoring_engine)):
    """
    Score pick records.

    Accepts category-keyed buckets (current or legacy keys), participant-keyed
    mappings or a pick log. Unknown entities and categories score 0.

    Returns:
        - member_scores: per participant total, picks and breakdown
        - leaderboard: the same entries, highest total first
        - rankings / best / worst: season reference figures
    """
    try:
        scores = engine.score_all(request.pick_records)
        leaderboard = engine.leaderboard(request.pick_records)

        return ScoreCalculateResponse(
            member_scores={pid: to_score_response(score) for pid, score in scores.items()},
            leaderboard=[to_score_response(score) for score in leaderboard],
            rankings=[
                EntityRankingResponse(rank=r.rank, entity_name=r.entity_name, score=r.score)
                for r in engine.entity_rankings()
            ],
            best_possible_score=engine.best_possible(),
            worst_possible_score=engine.worst_possible(),
            total_members=len(scores),
        )

    except Exception as e:
        logger.error(f"Failed to calculate scores: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")

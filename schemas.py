"""
Pydantic schemas: draft settings, API requests/responses and broadcast events.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from database import get_settings
from models import Category, DraftStatus


def _all_categories_enabled() -> Dict[Category, bool]:
    return {category: True for category in Category}


class DraftSettings(BaseModel):
    """
    Per-draft settings, stored as JSON on the draft row.

    Categories missing from `categories` are disabled. Every enabled category
    is filled once per participant, so there is one round per enabled category.
    """
    time_limit: int = Field(default=60, ge=30, le=300)
    auto_pick: bool = True
    randomize_order: bool = True
    categories: Dict[Category, bool] = Field(default_factory=_all_categories_enabled)

    def is_enabled(self, category: Category) -> bool:
        return self.categories.get(category, False)

    @property
    def enabled_categories(self) -> List[Category]:
        return [category for category in Category if self.is_enabled(category)]

    @property
    def total_rounds(self) -> int:
        return len(self.enabled_categories)


def get_default_draft_settings() -> DraftSettings:
    """Settings for a draft created without explicit ones"""
    settings = get_settings()
    return DraftSettings(
        time_limit=settings.default_pick_time_limit,
        auto_pick=settings.default_auto_pick,
    )


# ============ Draft requests ============

class DraftCreate(BaseModel):
    league_id: str
    settings: Optional[DraftSettings] = None
    draft_order: Optional[List[str]] = None


class PickSubmit(BaseModel):
    participant_id: str
    # Plain string so an unknown category is reported as invalid_category, not a 422
    category: str
    entity: str
    expected_sequence: Optional[int] = None


class AutoPickSubmit(BaseModel):
    # Omitted: whoever currently holds the turn (commissioner trigger)
    participant_id: Optional[str] = None
    expected_sequence: Optional[int] = None


class ResetRequest(BaseModel):
    confirm: bool = False
    regenerate_order: bool = False


# ============ Draft responses ============

class PickResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    round: int
    sequence_number: int
    participant_id: str
    category: Category
    entity: str
    auto: bool = False
    created_at: Optional[datetime] = None


class DraftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    league_id: str
    status: DraftStatus
    current_round: int
    current_sequence: int
    current_participant: Optional[str] = None
    draft_order: List[str]
    settings: DraftSettings
    picks: List[PickResponse]
    halted_reason: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class BoardRound(BaseModel):
    round: int
    picks: List[PickResponse]


class DraftBoardResponse(BaseModel):
    draft_id: str
    board: List[BoardRound]
    current_round: int
    current_sequence: int
    status: DraftStatus


class AvailableEntity(BaseModel):
    entity: str
    score: float


class AvailableEntitiesResponse(BaseModel):
    category: Category
    entities: List[AvailableEntity]


# ============ Broadcast events ============

class DraftEvent(BaseModel):
    """Payload published on a draft's channel after every state change"""
    event: str
    draft_id: str
    pick: Optional[PickResponse] = None
    current_participant: Optional[str] = None
    current_round: int
    current_sequence: int
    status: DraftStatus


# ============ Scores ============

class ScoreRecordResponse(BaseModel):
    entity_name: str
    total_score: float
    category_scores: Dict[str, float]


class CategoryScoreResponse(BaseModel):
    entity: str
    score: float


class ParticipantScoreResponse(BaseModel):
    participant_id: str
    total_score: float
    picks: Dict[str, str]
    breakdown: Dict[str, CategoryScoreResponse]


class EntityRankingResponse(BaseModel):
    rank: int
    entity_name: str
    score: float


class ScoreCalculateRequest(BaseModel):
    # Category-keyed buckets, participant-keyed mappings or a pick log
    pick_records: Union[Dict[str, Any], List[Dict[str, Any]]]


class ScoreCalculateResponse(BaseModel):
    member_scores: Dict[str, ParticipantScoreResponse]
    leaderboard: List[ParticipantScoreResponse]
    rankings: List[EntityRankingResponse]
    best_possible_score: float
    worst_possible_score: float
    total_members: int


class LeaderboardResponse(BaseModel):
    draft_id: str
    leaderboard: List[ParticipantScoreResponse]

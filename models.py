"""
SQLAlchemy models for the draft aggregate, the audit log and the season
reference data.

The Draft row plus its DraftPick rows is the whole persisted aggregate: the
draft manager rebuilds its view of a draft from these alone.
"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class DraftStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Category(str, enum.Enum):
    """Pick categories of the current season, in draft order."""
    GENERAL_EFFECT_1 = "ge1"
    GENERAL_EFFECT_2 = "ge2"
    VISUAL_PROFICIENCY = "visualproficiency"
    VISUAL_ANALYSIS = "visualanalysis"
    COLOR_GUARD = "colorguard"
    MUSIC_BRASS = "musicbrass"
    MUSIC_ANALYSIS = "musicanalysis"
    MUSIC_PERCUSSION = "musicpercussion"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    Category.GENERAL_EFFECT_1: "General Effect 1",
    Category.GENERAL_EFFECT_2: "General Effect 2",
    Category.VISUAL_PROFICIENCY: "Visual Proficiency",
    Category.VISUAL_ANALYSIS: "Visual Analysis",
    Category.COLOR_GUARD: "Color Guard",
    Category.MUSIC_BRASS: "Music Brass",
    Category.MUSIC_ANALYSIS: "Music Analysis",
    Category.MUSIC_PERCUSSION: "Music Percussion",
}


class Draft(Base):
    __tablename__ = "drafts"

    id = Column(String(36), primary_key=True, default=new_id)
    league_id = Column(String(64), nullable=False, index=True)
    status = Column(Enum(DraftStatus), nullable=False, default=DraftStatus.PENDING)

    # Turn pointer, advanced only by an accepted pick
    current_round = Column(Integer, nullable=False, default=1)
    current_sequence = Column(Integer, nullable=False, default=1)
    current_participant = Column(String(64), nullable=True)

    # JSON columns are always reassigned, never mutated in place
    draft_order = Column(JSON, nullable=False, default=list)
    settings = Column(JSON, nullable=False, default=dict)
    entity_pools = Column(JSON, nullable=False, default=dict)

    halted_reason = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    last_activity = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    version = Column(Integer, nullable=False)

    picks = relationship(
        "DraftPick",
        back_populates="draft",
        order_by="DraftPick.sequence_number",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}


class DraftPick(Base):
    __tablename__ = "draft_picks"
    __table_args__ = (
        UniqueConstraint("draft_id", "category", "entity", name="uq_pick_category_entity"),
        UniqueConstraint("draft_id", "participant_id", "category", name="uq_pick_participant_category"),
        UniqueConstraint("draft_id", "sequence_number", name="uq_pick_sequence"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    draft_id = Column(String(36), ForeignKey("drafts.id", ondelete="CASCADE"), nullable=False, index=True)
    round = Column(Integer, nullable=False)
    sequence_number = Column(Integer, nullable=False)
    participant_id = Column(String(64), nullable=False)
    category = Column(Enum(Category), nullable=False)
    entity = Column(String(128), nullable=False)
    auto = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    draft = relationship("Draft", back_populates="picks")


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    draft_id = Column(String(36), nullable=False, index=True)
    event_type = Column(String(32), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class ScoreRecord(Base):
    """One row per entity per season, read-only for the scoring engine."""
    __tablename__ = "score_records"
    __table_args__ = (
        UniqueConstraint("entity_name", "season", name="uq_score_entity_season"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_name = Column(String(128), nullable=False)
    season = Column(Integer, nullable=True)
    total_score = Column(Float, nullable=False, default=0.0)
    category_scores = Column(JSON, nullable=False, default=dict)


class LeagueMember(Base):
    """Roster rows owned by league management; the draft only reads them."""
    __tablename__ = "league_members"
    __table_args__ = (
        UniqueConstraint("league_id", "participant_id", name="uq_league_member"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(String(64), nullable=False, index=True)
    participant_id = Column(String(64), nullable=False)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

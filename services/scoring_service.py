"""
Scoring service: turns pick records into participant scores and leaderboards.

Scoring model:
- each pick is looked up in the reference table by (entity, category)
- the category resolves to a sub-score key through a static table
- effectiveScore = rawScore x (0.5 if family in {visual, music, colorguard} else 1.0)
- no sub-score for the key falls back to the entity's season total, unweighted
- an unknown entity or category scores 0; missing history is normal for new
  entities, so this is logged, never raised

Everything here is a pure function of the records passed in and the table
given at construction. No caches, so every call returns fresh results.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Union

from models import Category
from services.captions import CATEGORY_CAPTION_KEYS, parse_category, weight_for
from services.pick_records import CanonicalPicks, canonicalize
from services.reference_table import ReferenceScoreTable

logger = logging.getLogger(__name__)

# Size of a full five-slot roster, used for the best/worst reference totals
REFERENCE_ROSTER_SIZE = 5


@dataclass(frozen=True)
class CategoryScore:
    entity: str
    score: float


@dataclass
class ParticipantScore:
    participant_id: str
    total_score: float
    picks: Dict[Category, str] = field(default_factory=dict)
    breakdown: Dict[Category, CategoryScore] = field(default_factory=dict)


@dataclass(frozen=True)
class EntityRanking:
    rank: int
    entity_name: str
    score: float


class ScoringEngine:
    def __init__(self, table: ReferenceScoreTable):
        self.table = table

    def entity_score(self, entity: str, category: Union[Category, str]) -> float:
        """
        Effective score of one entity in one category.

        Args:
            entity: entity name, matched case-insensitively
            category: a Category or any known key / label ("Music Brass", "visual")

        Returns:
            weighted sub-score, the season total as fallback, or 0.0
        """
        resolved = parse_category(category)
        if resolved is None:
            logger.warning(f"No score mapping for category {category!r}, scoring 0")
            return 0.0

        record = self.table.lookup(entity)
        if record is None:
            logger.warning(f"No reference data for {entity!r}, scoring 0")
            return 0.0

        raw = record.sub_score(CATEGORY_CAPTION_KEYS[resolved])
        if raw:
            return raw * weight_for(resolved)

        return record.total_score or 0.0

    def breakdown(self, picks: Dict[Category, str]) -> Dict[Category, CategoryScore]:
        return {
            category: CategoryScore(entity=entity, score=self.entity_score(entity, category))
            for category, entity in picks.items()
        }

    def _score_canonical(self, participant_id: str, picks: Dict[Category, str]) -> ParticipantScore:
        breakdown = self.breakdown(picks)
        return ParticipantScore(
            participant_id=participant_id,
            total_score=sum(item.score for item in breakdown.values()),
            picks=dict(picks),
            breakdown=breakdown,
        )

    def score_of(self, pick_records: Any, participant_id: str) -> float:
        """Total effective score of one participant, 0.0 if they have no picks"""
        picks = canonicalize(pick_records).get(str(participant_id), {})
        return self._score_canonical(str(participant_id), picks).total_score

    def score_all(self, pick_records: Any) -> Dict[str, ParticipantScore]:
        """Every participant found in the records, in discovery order"""
        canonical: CanonicalPicks = canonicalize(pick_records)
        return {
            participant_id: self._score_canonical(participant_id, picks)
            for participant_id, picks in canonical.items()
        }

    def leaderboard(self, pick_records: Any) -> List[ParticipantScore]:
        """score_all sorted by total, highest first; ties keep discovery order"""
        return sorted(
            self.score_all(pick_records).values(),
            key=lambda entry: entry.total_score,
            reverse=True
        )

    def best_possible(self) -> float:
        """Sum of the top five season totals, a ceiling independent of any draft"""
        return sum(r.total_score for r in self.table.ranked()[:REFERENCE_ROSTER_SIZE])

    def worst_possible(self) -> float:
        """Sum of the bottom five season totals"""
        ascending = sorted(self.table.records, key=lambda r: r.total_score)
        return sum(r.total_score for r in ascending[:REFERENCE_ROSTER_SIZE])

    def entity_rankings(self) -> List[EntityRanking]:
        return [
            EntityRanking(rank=index + 1, entity_name=record.entity_name, score=record.total_score)
            for index, record in enumerate(self.table.ranked())
        ]

    def rank_pool(self, category: Category, entities: Sequence[str]) -> List[str]:
        """
        Order a category pool for auto-pick and the available list.

        Highest effective score first; ties (including entities without
        reference data) keep pool order.
        """
        return sorted(entities, key=lambda entity: self.entity_score(entity, category), reverse=True)

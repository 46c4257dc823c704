"""
Reference score table: season performance records per entity.

Loaded once per season and read-only afterwards. Three sources are
understood:
- score_records rows in the database
- the season JSON export: [{"corps": ..., "score": ..., "captions": {...}}]
- tab-separated championship result sheets

Sub-score keys are normalised through the caption alias table on the way in,
so coarse keys such as "brass" land on their detailed counterpart.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from sqlalchemy.orm import Session

from database import transactional
from models import ScoreRecord
from services.captions import CaptionKey, normalize_name, parse_caption_key

logger = logging.getLogger(__name__)

# Result sheet column order after the entity name
SHEET_COLUMNS = ("brass", "percussion", "colorguard", "visual", "generaleffect")

# A season total below this is a partial line, not a final score
MIN_SHEET_TOTAL = 80.0


@dataclass(frozen=True)
class EntityScores:
    entity_name: str
    total_score: float
    category_scores: Mapping[CaptionKey, float] = field(default_factory=dict)
    season: Optional[int] = None

    def sub_score(self, key: CaptionKey) -> Optional[float]:
        return self.category_scores.get(key)


def _normalize_caption_scores(raw: Mapping[str, Any], entity_name: str) -> Dict[CaptionKey, float]:
    scores: Dict[CaptionKey, float] = {}
    for name, value in (raw or {}).items():
        key = parse_caption_key(name)
        if key is None:
            logger.warning(f"Ignoring unknown caption {name!r} for {entity_name}")
            continue
        try:
            score = float(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric {name!r} score for {entity_name}: {value!r}")
            continue
        # The detailed key wins over a coarse alias that maps onto it
        if key.value == normalize_name(str(name)) or key not in scores:
            scores[key] = score
    return scores


def record_from_mapping(data: Mapping[str, Any]) -> EntityScores:
    """Accepts both the export layout (corps/score/captions) and the column layout"""
    entity_name = str(data.get("entity_name") or data.get("corps") or "").strip()
    if not entity_name:
        raise ValueError(f"Score record without an entity name: {data!r}")

    total = data.get("total_score", data.get("score", 0.0))
    captions = data.get("category_scores", data.get("captions", {}))
    return EntityScores(
        entity_name=entity_name,
        total_score=float(total or 0.0),
        category_scores=_normalize_caption_scores(captions, entity_name),
        season=data.get("season"),
    )


def _parse_float(text: str) -> Optional[float]:
    try:
        return float(text.strip())
    except ValueError:
        return None


def parse_result_sheet(raw_text: str) -> List[EntityScores]:
    """
    Parse a tab-separated result sheet.

    Layout per line: entity, brass, percussion, color guard, visual, general
    effect, ..., total. Lines without tabs, header lines ("Corps") and the
    "Total" line are skipped. The total is the last numeric column above 80;
    caption columns are only read when the line has at least 6 columns.
    """
    records = []

    for line in raw_text.strip().splitlines():
        line = line.strip()
        if not line or "\t" not in line:
            continue

        parts = line.split("\t")
        entity_name = parts[0].strip()
        if not entity_name or entity_name in ("Corps", "Total"):
            continue

        captions: Dict[str, float] = {}
        if len(parts) >= 6:
            for column, text in zip(SHEET_COLUMNS, parts[1:len(parts) - 1]):
                score = _parse_float(text)
                if score is not None and score > 0:
                    captions[column] = score

        total = next(
            (value for value in map(_parse_float, reversed(parts))
             if value is not None and value > MIN_SHEET_TOTAL),
            None
        )
        if total is None:
            continue

        records.append(EntityScores(
            entity_name=entity_name,
            total_score=total,
            category_scores=_normalize_caption_scores(captions, entity_name),
        ))

    return records


class ReferenceScoreTable:
    """
    Case-insensitive lookup over one season of EntityScores.

    Duplicate names keep the first record.
    """

    def __init__(self, records: Iterable[EntityScores] = ()):
        self._records = tuple(records)
        self._by_name: Dict[str, EntityScores] = {}
        for record in self._records:
            key = record.entity_name.casefold()
            if key in self._by_name:
                logger.warning(f"Duplicate score record for {record.entity_name}, keeping the first")
                continue
            self._by_name[key] = record

    @classmethod
    def from_rows(cls, rows: Iterable[ScoreRecord]) -> "ReferenceScoreTable":
        return cls(
            EntityScores(
                entity_name=row.entity_name,
                total_score=row.total_score or 0.0,
                category_scores=_normalize_caption_scores(row.category_scores, row.entity_name),
                season=row.season,
            )
            for row in rows
        )

    @classmethod
    def from_json(cls, data: Iterable[Mapping[str, Any]]) -> "ReferenceScoreTable":
        return cls(record_from_mapping(item) for item in data)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "ReferenceScoreTable":
        with open(path, encoding="utf-8") as fh:
            return cls.from_json(json.load(fh))

    @classmethod
    def from_result_sheet(cls, raw_text: str) -> "ReferenceScoreTable":
        return cls(parse_result_sheet(raw_text))

    @classmethod
    def load(cls, db: Session, season: Optional[int] = None) -> "ReferenceScoreTable":
        query = db.query(ScoreRecord)
        if season is not None:
            query = query.filter(ScoreRecord.season == season)
        table = cls.from_rows(query.order_by(ScoreRecord.id).all())
        logger.info(f"Loaded {len(table)} reference score records")
        return table

    def lookup(self, entity_name: str) -> Optional[EntityScores]:
        if not isinstance(entity_name, str):
            return None
        return self._by_name.get(entity_name.casefold())

    @property
    def records(self) -> tuple:
        return self._records

    def ranked(self) -> List[EntityScores]:
        """Records by total score, highest first; ties keep load order"""
        return sorted(self._records, key=lambda r: r.total_score, reverse=True)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, entity_name: str) -> bool:
        return self.lookup(entity_name) is not None


@transactional
def seed_reference_scores(db: Session, records: Iterable[EntityScores]) -> int:
    """
    Insert score rows for a season.

    Args:
        db: SQLAlchemy Session
        records: parsed EntityScores

    Returns:
        Number of rows inserted
    """
    count = 0
    for record in records:
        db.add(ScoreRecord(
            entity_name=record.entity_name,
            season=record.season,
            total_score=record.total_score,
            category_scores={key.value: score for key, score in record.category_scores.items()},
        ))
        count += 1

    logger.info(f"Seeded {count} reference score records")
    return count

"""
Pick-record normalization.

Historical pick records arrive in several shapes:

- category-keyed buckets, the way finished leagues store their results:
    {"ge1": [{"corps": "Bluecoats", "member": "u1"}, ...], "musicbrass": [...]}
  older seasons use the five coarse keys (brass, percussion, guard, visual,
  general) in the same layout
- participant-keyed mappings:
    {"u1": {"General Effect 1": "Bluecoats", "Music Brass": "Blue Devils"}}
- a draft pick log: DraftPick rows or dicts with participant_id / category / entity

canonicalize() turns any of them into one shape, participant -> {Category: entity},
so nothing downstream has to care where the data came from.
"""
import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional, Tuple

from models import Category
from services.captions import resolve_category_name

logger = logging.getLogger(__name__)

CanonicalPicks = Dict[str, Dict[Category, str]]

_PARTICIPANT_FIELDS = ("participant", "participant_id", "member")
_ENTITY_FIELDS = ("entity", "corps")


def canonicalize(pick_records: Any) -> CanonicalPicks:
    """
    Normalize pick records into participant -> {Category: entity}.

    Participants keep the order in which they were first seen. When a current
    and a legacy record claim the same slot for a participant, the current one
    wins. Unknown categories and malformed records are logged and skipped.
    """
    if not pick_records:
        return {}

    if isinstance(pick_records, Mapping):
        if _is_category_keyed(pick_records):
            return _from_category_buckets(pick_records)
        return _from_participant_mapping(pick_records)

    return _from_pick_log(pick_records)


def _is_category_keyed(records: Mapping) -> bool:
    return all(isinstance(value, (list, tuple)) for value in records.values())


def _field(record: Any, names: Tuple[str, ...]) -> Optional[Any]:
    for name in names:
        value = record.get(name) if isinstance(record, Mapping) else getattr(record, name, None)
        if value is not None:
            return value
    return None


def _valid_entity(entity: Any) -> bool:
    if isinstance(entity, str) and entity.strip():
        return True
    logger.warning(f"Skipping pick record with invalid entity: {entity!r}")
    return False


def _from_category_buckets(buckets: Mapping) -> CanonicalPicks:
    canonical: CanonicalPicks = {}
    resolved_buckets = []

    for key, records in buckets.items():
        resolved = resolve_category_name(key)
        if resolved is None:
            logger.warning(f"Skipping unknown category bucket: {key!r}")
            continue
        resolved_buckets.append((resolved, records))

        for record in records:
            participant = _field(record, _PARTICIPANT_FIELDS)
            if participant is not None:
                canonical.setdefault(str(participant), {})

    # Current buckets first so legacy data only fills slots that are still empty
    resolved_buckets.sort(key=lambda item: item[0][1])

    for participant, picks in canonical.items():
        for (category, _is_legacy), records in resolved_buckets:
            if category in picks:
                continue
            match = next(
                (r for r in records if str(_field(r, _PARTICIPANT_FIELDS)) == participant),
                None
            )
            if match is None:
                continue
            entity = _field(match, _ENTITY_FIELDS)
            if _valid_entity(entity):
                picks[category] = entity

    return canonical


def _from_participant_mapping(records: Mapping) -> CanonicalPicks:
    canonical: CanonicalPicks = {}

    for participant, captions in records.items():
        picks = canonical.setdefault(str(participant), {})
        if not isinstance(captions, Mapping):
            logger.warning(f"Skipping picks of {participant!r}: expected a mapping, got {type(captions).__name__}")
            continue

        resolved = []
        for name, entity in captions.items():
            category = resolve_category_name(name)
            if category is None:
                logger.warning(f"Skipping unknown category {name!r} for {participant!r}")
                continue
            resolved.append((category, entity))

        resolved.sort(key=lambda item: item[0][1])
        for (category, _is_legacy), entity in resolved:
            if category not in picks and _valid_entity(entity):
                picks[category] = entity

    return canonical


def _from_pick_log(picks: Iterable[Any]) -> CanonicalPicks:
    canonical: CanonicalPicks = {}

    for pick in picks:
        participant = _field(pick, _PARTICIPANT_FIELDS)
        resolved = resolve_category_name(_field(pick, ("category",)))
        if participant is None or resolved is None:
            logger.warning(f"Skipping malformed pick: {pick!r}")
            continue

        slot = canonical.setdefault(str(participant), {})
        entity = _field(pick, _ENTITY_FIELDS)
        if resolved[0] not in slot and _valid_entity(entity):
            slot[resolved[0]] = entity

    return canonical

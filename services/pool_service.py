"""
Entity pools: what can be drafted in each category.

A pool supplier is consulted once, when a draft is created. The result is
snapshotted into the draft row so validation never depends on a catalog that
could change mid-draft.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Sequence

from models import Category, Draft
from services.reference_table import ReferenceScoreTable
from services.scoring_service import ScoringEngine


class EntityPoolSupplier(ABC):
    @abstractmethod
    def get_pool(self, category: Category) -> List[str]:
        """
        Draftable entities of a category, in catalog order.
        """
        pass

    def snapshot(self, categories: Sequence[Category]) -> Dict[str, List[str]]:
        """JSON-ready {category key: pool} for the given categories"""
        return {category.value: list(self.get_pool(category)) for category in categories}


class StaticPoolSupplier(EntityPoolSupplier):
    def __init__(self, pools: Dict[Category, Sequence[str]]):
        self._pools = {Category(category): list(entities) for category, entities in pools.items()}

    def get_pool(self, category: Category) -> List[str]:
        return list(self._pools.get(category, []))


class ReferenceTablePoolSupplier(EntityPoolSupplier):
    """Every entity with season data is draftable in every category, best total first"""

    def __init__(self, table: ReferenceScoreTable):
        self._table = table

    def get_pool(self, category: Category) -> List[str]:
        return [record.entity_name for record in self._table.ranked()]


def get_pool(draft: Draft, category: Category) -> List[str]:
    return list((draft.entity_pools or {}).get(category.value, []))


def get_drafted_entities(draft: Draft, category: Category) -> List[str]:
    return [pick.entity for pick in draft.picks if pick.category == category]


def get_available_entities(draft: Draft, category: Category, engine: ScoringEngine) -> List[str]:
    """
    Pool minus what is already drafted in this category, ranked for picking.

    The first element is what auto-pick would take.
    """
    drafted = set(get_drafted_entities(draft, category))
    remaining = [entity for entity in get_pool(draft, category) if entity not in drafted]
    return engine.rank_pool(category, remaining)

"""
Roster suppliers: who takes part in a league's draft.

League membership is managed elsewhere; the draft only reads it, once, when
a draft starts without a stored order.
"""
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Sequence

from sqlalchemy.orm import Session

from models import LeagueMember


class RosterSupplier(ABC):
    @abstractmethod
    def get_participants(self, league_id: str) -> List[str]:
        """
        Participant ids of a league.

        Returns:
            Participant ids in roster order (may be empty)
        """
        pass


class StaticRosterSupplier(RosterSupplier):
    def __init__(self, rosters: Dict[str, Sequence[str]]):
        self._rosters = {league_id: list(members) for league_id, members in rosters.items()}

    def get_participants(self, league_id: str) -> List[str]:
        return list(self._rosters.get(league_id, []))


class SqlRosterSupplier(RosterSupplier):
    """Reads league_members, oldest member first"""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def get_participants(self, league_id: str) -> List[str]:
        db = self._session_factory()
        try:
            rows = (
                db.query(LeagueMember.participant_id)
                .filter(LeagueMember.league_id == league_id)
                .order_by(LeagueMember.joined_at, LeagueMember.id)
                .all()
            )
            return [participant_id for (participant_id,) in rows]
        finally:
            db.close()

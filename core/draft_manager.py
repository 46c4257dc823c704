"""
Draft Manager: the single serialized entry point for every draft operation.

Responsibilities:
1. Create drafts (settings + entity pool snapshot)
2. Lifecycle: start, pause, resume, cancel, reset
3. Picks: validate against turn and uniqueness rules, apply, detect completion
4. Auto-pick, by request or on pick timer expiry
5. After commit: broadcast the transition and re-arm / cancel the pick timer

Rules:
- every mutating operation runs inside draft_lock(draft_id) and one
  @transactional transaction, on a row loaded with SELECT ... FOR UPDATE
- every precondition is checked before the first mutation, so a rejected
  request leaves nothing behind
- broadcasting happens only after commit and can never undo a pick
- a consistency violation halts the draft until a confirmed reset
"""
import inspect
import logging
import random
from functools import wraps
from typing import Callable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from database import SessionLocal, on_commit, transactional
from models import Category, Draft, DraftPick, DraftStatus, EventLog, utcnow
from schemas import DraftEvent, DraftSettings, PickResponse, get_default_draft_settings
from core.broadcaster import DraftBroadcaster
from core.exceptions import (
    AutoPickDisabled,
    CategoryAlreadyFilled,
    DraftConsistencyError,
    DraftHalted,
    DraftNotActive,
    DraftNotFound,
    DraftRejection,
    EntityAlreadyDrafted,
    EntityNotInPool,
    InvalidCategory,
    InvalidDraftSettings,
    InvalidParticipantCount,
    InvalidStateTransition,
    NotYourTurn,
    ResetNotConfirmed,
    SequenceMismatch,
)
from core.locks import draft_lock, with_draft_lock
from core.pick_timer import PickTimers
from core.state_machine import DraftStateMachine
from services.captions import parse_category
from services.history_service import get_draft_board, get_participant_picks
from services.naming_service import generate_draft_order
from services.pool_service import (
    EntityPoolSupplier,
    get_available_entities,
    get_drafted_entities,
    get_pool,
)
from services.roster_service import RosterSupplier
from services.scoring_service import ParticipantScore, ScoringEngine
from services.turn_service import (
    get_picker_for_sequence,
    get_round_for_sequence,
    get_total_picks,
)

logger = logging.getLogger(__name__)

MIN_PARTICIPANTS = 2

DRAFT_STARTED = "draft-started"
PICK_MADE = "pick-made"
AUTO_PICK_MADE = "auto-pick-made"
DRAFT_PAUSED = "draft-paused"
DRAFT_RESUMED = "draft-resumed"
DRAFT_CANCELLED = "draft-cancelled"
DRAFT_RESET = "draft-reset"


def draft_operation(func):
    """
    Serialize a mutating operation on its draft id.

    The wrapped method must take `db` and `draft_id` parameters. A
    DraftConsistencyError escaping the (already rolled back) transaction is
    recorded on the draft in a fresh transaction before it is re-raised.
    """
    signature = inspect.signature(func)

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        bound = signature.bind(self, *args, **kwargs)
        draft_id = str(bound.arguments["draft_id"])
        db = bound.arguments["db"]

        with draft_lock(draft_id):
            try:
                return func(self, *args, **kwargs)
            except DraftConsistencyError as e:
                self._halt(db, draft_id, e.reason)
                raise

    return wrapper


class DraftManager:
    """Draft lifecycle manager"""

    def __init__(
        self,
        scoring_engine: ScoringEngine,
        roster_supplier: RosterSupplier,
        pool_supplier: EntityPoolSupplier,
        broadcaster: Optional[DraftBroadcaster] = None,
        timers: Optional[PickTimers] = None,
        session_factory: Callable[[], Session] = SessionLocal,
        rng: Optional[random.Random] = None
    ):
        self.scoring_engine = scoring_engine
        self.roster_supplier = roster_supplier
        self.pool_supplier = pool_supplier
        self.broadcaster = broadcaster
        self.timers = timers
        self.session_factory = session_factory
        self.rng = rng

        if self.timers is not None and self.timers.on_timeout is None:
            self.timers.on_timeout = self.handle_pick_timeout

    # ============ Lifecycle ============

    @transactional
    def create_draft(
        self,
        db: Session,
        league_id: str,
        settings: Optional[DraftSettings] = None,
        draft_order: Optional[List[str]] = None
    ) -> Draft:
        """
        Create a pending draft for a league.

        Flow:
        1. Resolve settings (the configured defaults when omitted)
        2. Snapshot the entity pool of every enabled category
        3. Store an explicit draft order if one was given; otherwise the
           order is generated from the roster at start()
        4. Record the event
        """
        settings = settings or get_default_draft_settings()

        draft = Draft(
            league_id=league_id,
            status=DraftStatus.PENDING,
            current_round=1,
            current_sequence=1,
            draft_order=list(dict.fromkeys(draft_order or [])),
            settings=settings.model_dump(mode="json"),
            entity_pools=self.pool_supplier.snapshot(settings.enabled_categories),
        )
        db.add(draft)
        db.flush()

        db.add(EventLog(
            draft_id=draft.id,
            event_type="DRAFT_CREATED",
            data={"league_id": league_id, "categories": [c.value for c in settings.enabled_categories]}
        ))

        logger.info(f"Created draft {draft.id} for league {league_id}")
        return draft

    @draft_operation
    @transactional
    def start_draft(self, db: Session, draft_id: str) -> Draft:
        """
        Start a pending draft (pending -> active).

        Preconditions:
        1. Draft exists, is not halted and is pending
        2. At least 2 participants (stored order, else the league roster)
        3. At least one enabled category
        4. Every enabled category pool can serve every participant

        Raises:
            DraftNotFound, DraftHalted, InvalidStateTransition,
            InvalidParticipantCount, InvalidDraftSettings
        """
        draft = self._load(db, draft_id)
        if draft.status != DraftStatus.PENDING:
            raise InvalidStateTransition(
                f"Draft can only be started from pending (status: {draft.status.value})"
            )

        settings = self._settings(draft)
        order = list(draft.draft_order or [])
        if not order:
            order = generate_draft_order(
                self.roster_supplier.get_participants(draft.league_id),
                randomize=settings.randomize_order,
                rng=self.rng
            )

        if len(order) < MIN_PARTICIPANTS:
            raise InvalidParticipantCount(
                f"Need at least {MIN_PARTICIPANTS} participants to start a draft, got {len(order)}"
            )

        if not settings.enabled_categories:
            raise InvalidDraftSettings("No category is enabled for this draft")

        for category in settings.enabled_categories:
            pool_size = len(set(get_pool(draft, category)))
            if pool_size < len(order):
                raise InvalidDraftSettings(
                    f"Pool for {category.label} has {pool_size} entities, "
                    f"{len(order)} participants need one each"
                )

        draft.draft_order = order
        DraftStateMachine.transition(draft, DraftStatus.ACTIVE, db)
        draft.current_round = 1
        draft.current_sequence = 1
        draft.current_participant = get_picker_for_sequence(order, 1)
        draft.started_at = utcnow()

        logger.info(f"Started draft {draft.id} with order {order}")
        self._notify(db, draft, DRAFT_STARTED)
        return draft

    @draft_operation
    @transactional
    def pause_draft(self, db: Session, draft_id: str) -> Draft:
        draft = self._load(db, draft_id)
        DraftStateMachine.transition(draft, DraftStatus.PAUSED, db)
        self._notify(db, draft, DRAFT_PAUSED)
        return draft

    @draft_operation
    @transactional
    def resume_draft(self, db: Session, draft_id: str) -> Draft:
        draft = self._load(db, draft_id)
        if draft.status != DraftStatus.PAUSED:
            raise InvalidStateTransition(
                f"Draft can only be resumed from paused (status: {draft.status.value})"
            )
        DraftStateMachine.transition(draft, DraftStatus.ACTIVE, db)
        self._notify(db, draft, DRAFT_RESUMED)
        return draft

    @draft_operation
    @transactional
    def cancel_draft(self, db: Session, draft_id: str) -> Draft:
        draft = self._load(db, draft_id)
        DraftStateMachine.transition(draft, DraftStatus.CANCELLED, db)
        draft.current_participant = None
        self._notify(db, draft, DRAFT_CANCELLED)
        return draft

    @draft_operation
    @transactional
    def reset_draft(
        self,
        db: Session,
        draft_id: str,
        confirm: bool = False,
        regenerate_order: bool = False
    ) -> Draft:
        """
        Discard every pick and return the draft to pending.

        Destructive, so the caller must pass confirm=True. Allowed from any
        status except pending, and on halted drafts (this is how a halt is
        cleared). The draft order is kept unless regenerate_order is set, in
        which case the same participants are reshuffled.

        Raises:
            DraftNotFound, ResetNotConfirmed, InvalidStateTransition
        """
        draft = self._load(db, draft_id, allow_halted=True)
        if not confirm:
            raise ResetNotConfirmed("Reset discards all picks and must be confirmed")
        if draft.status == DraftStatus.PENDING and not draft.halted_reason:
            raise InvalidStateTransition("Draft is already pending")

        previous = draft.status
        discarded = len(draft.picks)

        draft.picks.clear()
        if regenerate_order:
            draft.draft_order = generate_draft_order(draft.draft_order or [], randomize=True, rng=self.rng)

        draft.status = DraftStatus.PENDING
        draft.current_round = 1
        draft.current_sequence = 1
        draft.current_participant = None
        draft.started_at = None
        draft.completed_at = None
        draft.halted_reason = None
        draft.last_activity = utcnow()

        db.add(EventLog(
            draft_id=draft.id,
            event_type="DRAFT_RESET",
            data={"from": previous.value, "discarded_picks": discarded, "regenerated_order": regenerate_order}
        ))

        logger.warning(f"Draft {draft.id} reset from {previous.value}, {discarded} picks discarded")
        self._notify(db, draft, DRAFT_RESET)
        return draft

    # ============ Picks ============

    @draft_operation
    @transactional
    def request_pick(
        self,
        db: Session,
        draft_id: str,
        participant_id: str,
        category: Union[Category, str],
        entity: str,
        expected_sequence: Optional[int] = None
    ) -> DraftPick:
        """
        Claim an (entity, category) pair for the participant whose turn it is.

        Preconditions, in order, each with its own rejection:
            DraftHalted, DraftNotActive, SequenceMismatch, NotYourTurn,
            InvalidCategory, CategoryAlreadyFilled, EntityNotInPool,
            EntityAlreadyDrafted

        Returns:
            the new DraftPick
        """
        draft = self._load(db, draft_id)
        pick = self._apply_pick(db, draft, participant_id, category, entity, expected_sequence, auto=False)
        self._notify(db, draft, PICK_MADE, pick)
        return pick

    @draft_operation
    @transactional
    def auto_pick(
        self,
        db: Session,
        draft_id: str,
        participant_id: Optional[str] = None,
        expected_sequence: Optional[int] = None
    ) -> DraftPick:
        """
        Pick on a participant's behalf.

        Selection:
        1. first enabled category (fixed category order) the participant
           has not filled
        2. within it, the best remaining entity by reference score, ties in
           pool order
        3. a category with nothing left is skipped; nothing left anywhere is
           a consistency violation

        participant_id=None targets whoever holds the current turn.
        """
        draft = self._load(db, draft_id)
        participant_id = participant_id or draft.current_participant
        self._validate_turn(draft, participant_id, expected_sequence)

        settings = self._settings(draft)
        if not settings.auto_pick:
            raise AutoPickDisabled("Auto-pick is disabled for this draft")

        category, entity = self._choose_auto_pick(draft, participant_id, settings)
        pick = self._apply_pick(db, draft, participant_id, category, entity, expected_sequence, auto=True)

        logger.info(f"Auto-picked {entity} ({category.label}) for {participant_id} in draft {draft.id}")
        self._notify(db, draft, AUTO_PICK_MADE, pick)
        return pick

    def handle_pick_timeout(self, draft_id: str, sequence_number: int) -> Optional[DraftPick]:
        """
        Pick timer callback, runs on the timer thread.

        The expected sequence makes a timer that lost the race against a real
        pick (or a pause) a harmless rejection.
        """
        db = self.session_factory()
        try:
            return self.auto_pick(db, draft_id, expected_sequence=sequence_number)
        except (DraftRejection, DraftNotFound) as e:
            logger.info(f"Ignoring pick timeout for draft {draft_id} sequence {sequence_number}: {e}")
            return None
        finally:
            db.close()

    def rearm_timers(self, db: Session) -> int:
        """
        Arm a pick timer for every active, non-halted auto-pick draft.

        Timers only live in memory, so a restarted process calls this once at
        start-up; the current turn gets a fresh full countdown.

        Returns:
            Number of timers armed
        """
        if self.timers is None:
            return 0

        drafts = db.query(Draft).filter(
            Draft.status == DraftStatus.ACTIVE,
            Draft.halted_reason.is_(None)
        ).all()

        armed = 0
        for draft in drafts:
            settings = self._settings(draft)
            if not settings.auto_pick:
                continue
            self.timers.arm(draft.id, draft.current_sequence, settings.time_limit)
            armed += 1

        logger.info(f"Re-armed pick timers for {armed} active drafts")
        return armed

    # ============ Queries ============

    def get_draft(self, db: Session, draft_id: str) -> Draft:
        draft = db.query(Draft).filter(Draft.id == str(draft_id)).first()
        if not draft:
            raise DraftNotFound(draft_id)
        return draft

    def get_board(self, db: Session, draft_id: str):
        return get_draft_board(self.get_draft(db, draft_id))

    def get_participant_picks(self, db: Session, draft_id: str, participant_id: str) -> List[DraftPick]:
        return get_participant_picks(self.get_draft(db, draft_id), participant_id)

    def get_available(self, db: Session, draft_id: str, category: Union[Category, str]) -> List[Tuple[str, float]]:
        """Remaining entities of a category with their effective scores, best first"""
        draft = self.get_draft(db, draft_id)
        resolved = parse_category(category)
        if resolved is None or not self._settings(draft).is_enabled(resolved):
            raise InvalidCategory(f"Category {category!r} is not part of this draft")

        return [
            (entity, self.scoring_engine.entity_score(entity, resolved))
            for entity in get_available_entities(draft, resolved, self.scoring_engine)
        ]

    def get_leaderboard(self, db: Session, draft_id: str) -> List[ParticipantScore]:
        """Score the draft's pick log on demand; nothing is cached"""
        return self.scoring_engine.leaderboard(self.get_draft(db, draft_id).picks)

    # ============ Internals ============

    def _load(self, db: Session, draft_id: str, allow_halted: bool = False) -> Draft:
        draft = with_draft_lock(draft_id, db).first()
        if not draft:
            raise DraftNotFound(draft_id)
        if draft.halted_reason and not allow_halted:
            raise DraftHalted(f"Draft is halted pending inspection: {draft.halted_reason}")
        return draft

    @staticmethod
    def _settings(draft: Draft) -> DraftSettings:
        return DraftSettings.model_validate(draft.settings or {})

    def _validate_turn(self, draft: Draft, participant_id: Optional[str], expected_sequence: Optional[int]) -> None:
        if draft.status != DraftStatus.ACTIVE:
            raise DraftNotActive(f"Draft is not active (status: {draft.status.value})")

        if len(draft.picks) != draft.current_sequence - 1:
            raise DraftConsistencyError(
                draft.id,
                f"{len(draft.picks)} picks recorded but sequence pointer is {draft.current_sequence}"
            )

        if expected_sequence is not None and expected_sequence != draft.current_sequence:
            raise SequenceMismatch(
                f"Pick {expected_sequence} is no longer open, current pick is {draft.current_sequence}"
            )

        current = get_picker_for_sequence(draft.draft_order, draft.current_sequence)
        if participant_id != current:
            raise NotYourTurn(f"Not your turn to pick, waiting on {current}")

    def _apply_pick(
        self,
        db: Session,
        draft: Draft,
        participant_id: str,
        category: Union[Category, str],
        entity: str,
        expected_sequence: Optional[int],
        auto: bool
    ) -> DraftPick:
        # 1. Validate everything before touching the aggregate
        self._validate_turn(draft, participant_id, expected_sequence)
        settings = self._settings(draft)

        resolved = parse_category(category)
        if resolved is None or not settings.is_enabled(resolved):
            raise InvalidCategory(f"Category {category!r} is not part of this draft")

        filled = {p.category for p in draft.picks if p.participant_id == participant_id}
        if resolved in filled:
            raise CategoryAlreadyFilled(f"You already have a {resolved.label} pick")

        if entity not in get_pool(draft, resolved):
            raise EntityNotInPool(f"{entity} cannot be drafted for {resolved.label}")

        if entity in get_drafted_entities(draft, resolved):
            raise EntityAlreadyDrafted(f"{entity} already drafted for {resolved.label}")

        # 2. Apply
        now = utcnow()
        pick = DraftPick(
            round=draft.current_round,
            sequence_number=draft.current_sequence,
            participant_id=participant_id,
            category=resolved,
            entity=entity,
            auto=auto,
            created_at=now,
        )
        draft.picks.append(pick)

        order = draft.draft_order
        draft.current_sequence = draft.current_sequence + 1
        draft.current_round = get_round_for_sequence(draft.current_sequence, len(order))
        draft.last_activity = now

        db.add(EventLog(
            draft_id=draft.id,
            event_type="PICK_MADE",
            data={
                "sequence": pick.sequence_number,
                "participant_id": participant_id,
                "category": resolved.value,
                "entity": entity,
                "auto": auto,
            }
        ))

        # 3. Completion by exact coverage
        self._check_completion(db, draft, settings)
        if draft.status == DraftStatus.ACTIVE:
            draft.current_participant = get_picker_for_sequence(order, draft.current_sequence)
        else:
            draft.current_participant = None

        return pick

    def _check_completion(self, db: Session, draft: Draft, settings: DraftSettings) -> None:
        required = get_total_picks(len(draft.draft_order), len(settings.enabled_categories))
        members = set(draft.draft_order)
        covered = {
            (p.participant_id, p.category) for p in draft.picks
            if p.participant_id in members and settings.is_enabled(p.category)
        }

        if len(covered) == required:
            if len(draft.picks) != required:
                raise DraftConsistencyError(
                    draft.id, f"coverage complete but {len(draft.picks)} picks recorded, expected {required}"
                )
            DraftStateMachine.transition(draft, DraftStatus.COMPLETED, db)
            draft.completed_at = utcnow()
            logger.info(f"Draft {draft.id} completed after {required} picks")
        elif len(draft.picks) >= required:
            raise DraftConsistencyError(
                draft.id, f"{len(draft.picks)} picks cover only {len(covered)} of {required} slots"
            )

    def _choose_auto_pick(self, draft: Draft, participant_id: str, settings: DraftSettings) -> Tuple[Category, str]:
        filled = {p.category for p in draft.picks if p.participant_id == participant_id}

        for category in settings.enabled_categories:
            if category in filled:
                continue
            available = get_available_entities(draft, category, self.scoring_engine)
            if available:
                return category, available[0]

        raise DraftConsistencyError(draft.id, f"no legal auto-pick left for {participant_id}")

    def _notify(self, db: Session, draft: Draft, event: str, pick: Optional[DraftPick] = None) -> None:
        """
        Queue the broadcast and the timer update for after commit.

        The payload is built now, while the aggregate is still loaded.
        """
        message = DraftEvent(
            event=event,
            draft_id=draft.id,
            pick=PickResponse.model_validate(pick) if pick is not None else None,
            current_participant=draft.current_participant,
            current_round=draft.current_round,
            current_sequence=draft.current_sequence,
            status=draft.status,
        ).model_dump(mode="json")

        draft_id = draft.id
        settings = self._settings(draft)
        keep_timer = draft.status == DraftStatus.ACTIVE and settings.auto_pick
        sequence = draft.current_sequence

        if self.timers is not None:
            if keep_timer:
                on_commit(db, lambda: self.timers.arm(draft_id, sequence, settings.time_limit))
            else:
                on_commit(db, lambda: self.timers.cancel(draft_id))

        if self.broadcaster is not None:
            on_commit(db, lambda: self.broadcaster.publish(draft_id, message))

    @transactional
    def _halt(self, db: Session, draft_id: str, reason: str) -> None:
        draft = with_draft_lock(draft_id, db).first()
        if not draft:
            return

        draft.halted_reason = reason
        db.add(EventLog(draft_id=draft_id, event_type="DRAFT_HALTED", data={"reason": reason}))
        if self.timers is not None:
            on_commit(db, lambda: self.timers.cancel(draft_id))

        logger.error(f"Draft {draft_id} halted: {reason}")

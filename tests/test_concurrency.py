"""Tests for serialized pick handling under concurrent requests."""

import threading
import time

from models import DraftStatus
from core.exceptions import DraftRejection, NotYourTurn, SequenceMismatch
from services.captions import parse_category


def run_threads(targets):
    barrier = threading.Barrier(len(targets))
    threads = []
    for target in targets:
        def runner(target=target):
            barrier.wait()
            target()
        threads.append(threading.Thread(target=runner))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)


class TestConcurrentPicks:
    """Racing requests against one draft."""

    def test_same_turn_race_has_one_winner(self, manager, session_factory, started_draft):
        """Two requests for sequence 1: exactly one lands, the other sees the turn moved on."""
        draft_id = started_draft.id
        results = {}

        def submit(entity):
            db = session_factory()
            try:
                results[entity] = manager.request_pick(db, draft_id, "A", "ge1", entity, expected_sequence=1).entity
            except SequenceMismatch as e:
                results[entity] = e
            finally:
                db.close()

        run_threads([lambda: submit("Alpha"), lambda: submit("Bravo")])

        winners = [value for value in results.values() if isinstance(value, str)]
        losers = [value for value in results.values() if isinstance(value, SequenceMismatch)]
        assert len(winners) == 1
        assert len(losers) == 1

        db = session_factory()
        try:
            draft = manager.get_draft(db, draft_id)
            assert [p.entity for p in draft.picks] == winners
            assert draft.current_sequence == 2
        finally:
            db.close()

    def test_right_and_wrong_participant_race(self, manager, session_factory, started_draft):
        """A and C both submit while A holds the turn: A lands, C is told it is not their turn."""
        draft_id = started_draft.id
        results = {}

        def submit(participant_id, entity):
            db = session_factory()
            try:
                results[participant_id] = manager.request_pick(db, draft_id, participant_id, "ge1", entity).entity
            except NotYourTurn as e:
                results[participant_id] = e
            finally:
                db.close()

        run_threads([lambda: submit("A", "Alpha"), lambda: submit("C", "Bravo")])

        assert results["A"] == "Alpha"
        assert isinstance(results["C"], NotYourTurn)

    def test_all_participants_hammering_complete_a_valid_draft(self, manager, session_factory, started_draft):
        """Every participant retries greedily; the result is still one legal snake draft."""
        draft_id = started_draft.id
        errors = []

        def participant_loop(participant_id):
            for _ in range(500):
                db = session_factory()
                try:
                    draft = manager.get_draft(db, draft_id)
                    if draft.status != DraftStatus.ACTIVE:
                        return
                    filled = {p.category for p in draft.picks if p.participant_id == participant_id}
                    category = next(
                        c for c in ("ge1", "musicbrass") if parse_category(c) not in filled
                    )
                    available = manager.get_available(db, draft_id, category)
                    if available:
                        manager.request_pick(db, draft_id, participant_id, category, available[0][0])
                except StopIteration:
                    return
                except DraftRejection:
                    pass
                except Exception as e:
                    errors.append(e)
                    return
                finally:
                    db.close()
                time.sleep(0.001)

        run_threads([lambda p=p: participant_loop(p) for p in ("A", "B", "C")])

        assert errors == []
        db = session_factory()
        try:
            draft = manager.get_draft(db, draft_id)
            assert draft.status == DraftStatus.COMPLETED
            assert [p.participant_id for p in draft.picks] == ["A", "B", "C", "C", "B", "A"]
            assert [p.sequence_number for p in draft.picks] == [1, 2, 3, 4, 5, 6]
            for category in {p.category for p in draft.picks}:
                entities = [p.entity for p in draft.picks if p.category == category]
                assert len(entities) == len(set(entities))
        finally:
            db.close()

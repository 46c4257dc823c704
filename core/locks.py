"""
Concurrency control.

Two layers, both taken for every mutating draft operation:

1. draft_lock(): an in-process lock per draft id. One authoritative process
   owns a draft, so this is what strictly orders concurrent pick requests,
   including on SQLite, which ignores row locks.
2. with_draft_lock(): SELECT ... FOR UPDATE on the draft row, so the read and
   the write of the aggregate happen inside one locked transaction on
   databases that support it.
"""
import threading
import weakref
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Query, Session

from models import Draft

_registry_lock = threading.Lock()
# Entries vanish once no operation holds the lock any more
_draft_locks: "weakref.WeakValueDictionary[str, threading.RLock]" = weakref.WeakValueDictionary()


def get_draft_lock(draft_id: str) -> threading.RLock:
    """
    The lock guarding one draft id, created on first use.

    RLock so an operation that internally chains another (a timer expiry
    running auto-pick) can re-enter on the same thread.
    """
    with _registry_lock:
        lock = _draft_locks.get(draft_id)
        if lock is None:
            lock = threading.RLock()
            _draft_locks[draft_id] = lock
        return lock


@contextmanager
def draft_lock(draft_id: str) -> Iterator[None]:
    """
    Critical section for one draft.

    Usage:
        with draft_lock(draft_id):
            draft = with_draft_lock(draft_id, db).first()
            ...
            db.commit()

    Notes:
        - take it before the first query of the transaction, so the
          transaction never starts from a stale read
    """
    lock = get_draft_lock(str(draft_id))
    with lock:
        yield


def with_draft_lock(draft_id: str, db: Session) -> Query:
    """
    Lock a Draft row (row-level lock).

    Returns:
        Query object (call .first() or .one())

    Notes:
        - nowait=False waits for the lock instead of failing
        - must be used inside a transaction that ends in commit or rollback
        - populate_existing() refreshes an identity-mapped instance, so a
          session reused across operations never sees its own stale copy
    """
    return db.query(Draft).filter(
        Draft.id == str(draft_id)
    ).populate_existing().with_for_update(nowait=False)

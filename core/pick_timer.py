"""
Per-draft pick timers.

At most one timer per draft. Arming replaces the previous timer, so a timer
always belongs to exactly one (draft, sequence) turn. Expiry hands the
sequence number back to the callback, which lets the draft manager reject a
timer that lost a race against a real pick.
"""
import logging
import threading
from typing import Callable, Dict, Tuple

logger = logging.getLogger(__name__)

TimeoutCallback = Callable[[str, int], None]


class PickTimers:

    def __init__(self, on_timeout: TimeoutCallback = None):
        self._lock = threading.Lock()
        self._timers: Dict[str, Tuple[int, threading.Timer]] = {}
        self.on_timeout = on_timeout

    def arm(self, draft_id: str, sequence_number: int, seconds: float) -> None:
        """Start (or restart) the countdown for the given turn"""
        timer = threading.Timer(seconds, self._fire, args=(draft_id, sequence_number))
        timer.daemon = True

        with self._lock:
            previous = self._timers.pop(draft_id, None)
            self._timers[draft_id] = (sequence_number, timer)

        if previous:
            previous[1].cancel()
        timer.start()
        logger.debug(f"Armed {seconds}s pick timer for draft {draft_id} sequence {sequence_number}")

    def cancel(self, draft_id: str) -> bool:
        with self._lock:
            entry = self._timers.pop(draft_id, None)
        if entry is None:
            return False
        entry[1].cancel()
        logger.debug(f"Cancelled pick timer for draft {draft_id}")
        return True

    def cancel_all(self) -> None:
        with self._lock:
            entries = list(self._timers.values())
            self._timers.clear()
        for _, timer in entries:
            timer.cancel()

    def armed_sequence(self, draft_id: str):
        """Sequence number the draft's timer is waiting on, or None"""
        with self._lock:
            entry = self._timers.get(draft_id)
        return entry[0] if entry else None

    def _fire(self, draft_id: str, sequence_number: int) -> None:
        with self._lock:
            entry = self._timers.get(draft_id)
            if entry is None or entry[0] != sequence_number:
                return
            del self._timers[draft_id]

        logger.info(f"Pick timer expired for draft {draft_id} sequence {sequence_number}")
        if self.on_timeout is None:
            return
        try:
            self.on_timeout(draft_id, sequence_number)
        except Exception as e:
            logger.error(f"Pick timeout handling failed for draft {draft_id}: {e}", exc_info=True)

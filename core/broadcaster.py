"""
Real-time broadcaster: one pub/sub channel per draft id.

Publishing is fire-and-forget for the draft manager. A subscriber that is
slow, full or gone is skipped with a warning; it can never fail a state
change or hold up other subscribers.

Channel membership is independent of draft state. join() twice is the same
as once, leave() of a channel never joined is a no-op.
"""
import asyncio
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class Subscriber(ABC):
    def __init__(self, subscriber_id: str = None):
        self.id = subscriber_id or str(uuid.uuid4())

    @abstractmethod
    def deliver(self, message: Dict[str, Any]) -> None:
        """
        Hand a message to the subscriber without blocking.

        May raise; the broadcaster logs and moves on.
        """
        pass


class QueueSubscriber(Subscriber):
    """
    Subscriber backed by an asyncio.Queue, drained by a WebSocket task.

    deliver() is called from worker threads, so the put is scheduled onto the
    subscriber's own event loop. When the queue is full the message is
    dropped for this subscriber only.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, maxsize: int = 100, subscriber_id: str = None):
        super().__init__(subscriber_id)
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def _offer(self, message: Dict[str, Any]) -> None:
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Subscriber {self.id} queue full, dropped {message.get('event')}")

    def deliver(self, message: Dict[str, Any]) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self.loop:
            self._offer(message)
        else:
            self.loop.call_soon_threadsafe(self._offer, message)


class DraftBroadcaster:

    def __init__(self):
        self._lock = threading.Lock()
        self._channels: Dict[str, Dict[str, Subscriber]] = {}

    @staticmethod
    def channel_name(draft_id: str) -> str:
        return f"draft-{draft_id}"

    def join(self, draft_id: str, subscriber: Subscriber) -> bool:
        """
        Add a subscriber to a draft's channel.

        Returns:
            True if newly joined, False if it was already a member
        """
        with self._lock:
            members = self._channels.setdefault(str(draft_id), {})
            if subscriber.id in members:
                return False
            members[subscriber.id] = subscriber

        logger.info(f"Subscriber {subscriber.id} joined {self.channel_name(draft_id)}")
        return True

    def leave(self, draft_id: str, subscriber: Subscriber) -> bool:
        """
        Remove a subscriber from a draft's channel.

        Returns:
            True if it was a member, False otherwise
        """
        with self._lock:
            members = self._channels.get(str(draft_id))
            if not members or subscriber.id not in members:
                return False
            del members[subscriber.id]
            if not members:
                del self._channels[str(draft_id)]

        logger.info(f"Subscriber {subscriber.id} left {self.channel_name(draft_id)}")
        return True

    def leave_all(self, subscriber: Subscriber) -> int:
        """Drop a subscriber from every channel, e.g. when its socket closes"""
        with self._lock:
            draft_ids = [
                draft_id for draft_id, members in self._channels.items()
                if subscriber.id in members
            ]
        return sum(1 for draft_id in draft_ids if self.leave(draft_id, subscriber))

    def subscribers(self, draft_id: str) -> List[Subscriber]:
        with self._lock:
            return list(self._channels.get(str(draft_id), {}).values())

    def publish(self, draft_id: str, message: Dict[str, Any]) -> int:
        """
        Deliver a message to every subscriber of a draft's channel.

        Returns:
            Number of subscribers the message was handed to
        """
        delivered = 0
        for subscriber in self.subscribers(draft_id):
            try:
                subscriber.deliver(message)
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Delivery of {message.get('event')} to {subscriber.id} "
                    f"on {self.channel_name(draft_id)} failed: {e}"
                )

        logger.debug(f"Published {message.get('event')} on {self.channel_name(draft_id)} to {delivered} subscribers")
        return delivered

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, Hashable, List, Optional, TypeVar

from cinegenius.core.models import ConversationTurn

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class ResultCache(Generic[K, V]):
    """
    Keyed store for one artifact kind.

    Holds at most one live entry per key and at most one pending generation
    per key. ``clear`` bumps the epoch, so a generation issued before the
    clear can still finish but can no longer write into the cache.

    With ``single_slot=True`` the cache keeps only the most recent key (the
    storyboard of the currently selected scene, for example).
    """

    def __init__(self, name: str, single_slot: bool = False):
        self.name = name
        self.single_slot = single_slot
        self.epoch = 0
        self._entries: Dict[K, V] = {}
        self._pending: Dict[K, "asyncio.Future[V]"] = {}

    def __contains__(self, key: K) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: K) -> Optional[V]:
        return self._entries.get(key)

    def items(self):
        return list(self._entries.items())

    def put(self, key: K, value: V, epoch: Optional[int] = None) -> bool:
        """Stores value under key, overwriting any previous entry.

        Returns False (and stores nothing) when ``epoch`` predates the last clear.
        """
        if epoch is not None and epoch != self.epoch:
            logger.info(f"Discarding stale {self.name} result for key {key!r}")
            return False
        if self.single_slot:
            self._entries.clear()
        self._entries[key] = value
        return True

    def invalidate(self, key: K):
        self._entries.pop(key, None)

    def clear(self):
        self.epoch += 1
        self._entries.clear()
        self._pending.clear()

    def is_pending(self, key: K) -> bool:
        return key in self._pending

    async def get_or_create(self, key: K, factory: Callable[[], Awaitable[V]]) -> V:
        """Returns the cached value, joining or starting the single generation for key."""
        if key in self._entries:
            return self._entries[key]

        pending = self._pending.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._generate(key, factory, self.epoch))
            self._pending[key] = pending
        return await pending

    async def _generate(self, key: K, factory: Callable[[], Awaitable[V]], epoch: int) -> V:
        try:
            value = await factory()
            self.put(key, value, epoch=epoch)
            return value
        finally:
            if epoch == self.epoch:
                self._pending.pop(key, None)


class Conversation:
    """Append-only Q&A log whose pending turns are resolved in place."""

    def __init__(self):
        self.epoch = 0
        self._turns: List[ConversationTurn] = []

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> List[ConversationTurn]:
        return list(self._turns)

    def append(self, role: str, content: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, content=content)
        self._turns.append(turn)
        return turn

    def begin_pending(self) -> ConversationTurn:
        return self.append("pending", "")

    def resolve(self, pending_id: str, content: str, epoch: Optional[int] = None) -> bool:
        """Replaces the pending turn carrying pending_id with an assistant turn.

        The turn is found by scanning for its marker, since other turns may
        have been appended after it was issued.
        """
        if epoch is not None and epoch != self.epoch:
            logger.info("Discarding stale assistant reply")
            return False
        for index, turn in enumerate(self._turns):
            if turn.is_pending and turn.id == pending_id:
                self._turns[index] = ConversationTurn(role="assistant", content=content, id=pending_id)
                return True
        return False

    def clear(self):
        self.epoch += 1
        self._turns.clear()

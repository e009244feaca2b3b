from bisect import bisect_left, insort
from typing import Iterable, Iterator, Optional

from studyhub.models.messaging import GroupMessage


class MessageTimeline:
    """
    Ordered, duplicate-free message sequence for one group view.

    History snapshots and live deliveries can arrive in any interleaving;
    the timeline keys messages by id and keeps them sorted by
    ``(created_at, id)``, so the rendered order never depends on arrival
    order and re-delivering a known message is a no-op.
    """

    def __init__(self, messages: Optional[Iterable[GroupMessage]] = None):
        self._messages: list[GroupMessage] = []
        self._ids: set[str] = set()
        if messages:
            self.extend(messages)

    def add(self, message: GroupMessage) -> bool:
        """Insert a message in order. Returns False if its id was already known."""
        if message.id in self._ids:
            return False
        self._ids.add(message.id)
        insort(self._messages, message, key=lambda m: m.sort_key)
        return True

    def position(self, message: GroupMessage) -> int:
        """Index of a known message in timeline order."""
        return bisect_left(self._messages, message.sort_key, key=lambda m: m.sort_key)

    def previous(self, message: GroupMessage) -> Optional[GroupMessage]:
        """The message rendered just before ``message``, if any."""
        index = self.position(message)
        return self._messages[index - 1] if index else None

    def extend(self, messages: Iterable[GroupMessage]) -> int:
        """Merge many messages. Returns how many were new."""
        return sum(1 for message in messages if self.add(message))

    @property
    def messages(self) -> list[GroupMessage]:
        return list(self._messages)

    @property
    def latest(self) -> Optional[GroupMessage]:
        return self._messages[-1] if self._messages else None

    def files(self) -> list[GroupMessage]:
        return [message for message in self._messages if message.is_file]

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    def __iter__(self) -> Iterator[GroupMessage]:
        return iter(list(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

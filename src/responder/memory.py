"""Short-term memory of recent replies (in process only, never persisted)."""

from collections import deque
from dataclasses import dataclass, field


@dataclass
class ShortTermMemory:
    """Bounded FIFO of the most recent accepted replies for one channel."""

    capacity: int = 5
    _items: deque[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._items = deque(maxlen=self.capacity)

    def add(self, reply: str) -> None:
        """Append a reply, evicting the oldest one when full."""
        self._items.append(reply)

    def items(self) -> list[str]:
        """Oldest first."""
        return list(self._items)

    def aggregate(self) -> str:
        return " ".join(self._items)

    def clear(self) -> int:
        """Forget everything. Returns the count of cleared replies."""
        count = len(self._items)
        self._items.clear()
        return count

    def __len__(self) -> int:
        return len(self._items)

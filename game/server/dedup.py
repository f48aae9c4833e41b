"""Per-sender sequence filter rejecting duplicate and stale commands."""

from __future__ import annotations

import logging
from typing import Hashable

log = logging.getLogger("dedup")


class SequenceFilter:
    """Strictly monotonic admission: accept only sequences above the last accepted.

    Gaps are accepted as-is; nothing is buffered or reordered.
    """

    def __init__(self):
        self._last: dict[Hashable, int] = {}

    def accept(self, key: Hashable, sequence: int) -> bool:
        last = self._last.get(key, 0)
        if sequence <= last:
            log.debug(f"Duplicate or stale sequence {sequence} from {key} (last {last})")
            return False
        self._last[key] = sequence
        return True

    def last_accepted(self, key: Hashable) -> int:
        return self._last.get(key, 0)

    def forget(self, key: Hashable):
        self._last.pop(key, None)

    def __len__(self) -> int:
        return len(self._last)

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class _Slot:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class KeyedLock:
    """One lock per key, alive only while someone holds or waits on it.

    Serializes check-then-act sequences for the same employee inside one
    process. Cross-process safety comes from the database constraints.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._slots: dict[Hashable, _Slot] = {}

    def __len__(self) -> int:
        """Keys currently held or waited on."""
        with self._guard:
            return len(self._slots)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = _Slot()
            slot.holders += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._slots[key]

"""Fixed-capacity open-addressing set of visited addresses."""

from __future__ import annotations

_MASK = 0xFFFF_FFFF_FFFF_FFFF
_EMPTY = _MASK


def _mix(x: int) -> int:
    x = ((x ^ (x >> 30)) * 0xBF58476D1CE4E5B9) & _MASK
    x = ((x ^ (x >> 27)) * 0x94D049BB133111EB) & _MASK
    return x ^ (x >> 31)


def _unmix(x: int) -> int:
    x = ((x ^ (x >> 31) ^ (x >> 62)) * 0x319642B2D24D8EC3) & _MASK
    x = ((x ^ (x >> 27) ^ (x >> 54)) * 0x96DE1B173F119089) & _MASK
    return x ^ (x >> 30) ^ (x >> 60)


class Visitor:
    """A set of 64-bit values with a fixed capacity and linear probing."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._values = [_EMPTY] * capacity
        self._count = 0

    def add(self, value: int) -> bool:
        """Insert a value; False if it was present or the set is full."""
        value &= _MASK
        if self._count == self.capacity:
            return False
        index = _mix(value) % self.capacity
        while self._values[index] != _EMPTY:
            if self._values[index] == value:
                return False
            index = (index + 1) % self.capacity
        if value == _EMPTY:
            return False
        self._values[index] = value
        self._count += 1
        return True

    def compressed(self) -> list[int]:
        """Stored values in slot order."""
        return [v for v in self._values if v != _EMPTY]

    def __len__(self) -> int:
        return self._count

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, int):
            return False
        value &= _MASK
        if value == _EMPTY:
            return False
        index = _mix(value) % self.capacity
        for _ in range(self.capacity):
            slot = self._values[index]
            if slot == value:
                return True
            if slot == _EMPTY:
                return False
            index = (index + 1) % self.capacity
        return False
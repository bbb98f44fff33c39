"""String set helpers; plain ``set[str]`` is the set type."""

from __future__ import annotations

from typing import Iterable


class MapStringSet(dict):
    """A mapping from keys to sets of strings."""

    def add(self, key: str, value: str) -> None:
        """Add ``value`` to the set under ``key``, creating the set if needed."""
        self.setdefault(key, set()).add(value)


def make(*args: str) -> set[str]:
    """Create a string set from the given values."""
    return set(args)


def from_iterable(values: Iterable[str]) -> set[str]:
    return set(values)


def equal(a: set[str] | None, b: set[str] | None) -> bool:
    """Compare two string sets; two missing sets are equal, one missing set is not."""
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    return set(a) == set(b)
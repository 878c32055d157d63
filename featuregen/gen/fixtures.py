from __future__ import annotations

from typing import Iterable, Iterator, List, Optional


class FixtureSet:
    """Fixture names in first-seen order, each name kept once."""

    def __init__(self, names: Optional[Iterable[str]] = None):
        self._names: dict = {}
        if names:
            self.update(names)

    def add(self, name: str) -> None:
        if name:
            self._names.setdefault(name, None)

    def update(self, names: Iterable[str]) -> None:
        for name in names:
            self.add(name)

    def copy(self) -> "FixtureSet":
        return FixtureSet(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FixtureSet):
            return list(self) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"FixtureSet({list(self)!r})"

    def as_list(self) -> List[str]:
        return list(self._names)

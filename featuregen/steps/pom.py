"""
Page-object graph for decorator-style steps.

A page object is a class registered with ``StepRegistryBuilder.page_object``.
Its step methods are marked with the decorators below; registering the class
turns them into bindings attached to the class node. Nodes are linked to the
nearest registered base class, which gives a rooted graph per hierarchy.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from ..models import StepRole


PENDING_STEPS_ATTR = "__featuregen_steps__"


@dataclass(frozen=True)
class PendingStep:
    role: StepRole
    pattern: Union[str, re.Pattern]
    tags: Optional[str] = None


@dataclass(eq=False)
class PageObjectNode:
    class_name: str
    fixture_name: str = ""
    parent: Optional["PageObjectNode"] = None
    _children: List["PageObjectNode"] = field(default_factory=list, repr=False)

    @property
    def children(self) -> Tuple["PageObjectNode", ...]:
        return tuple(self._children)

    def lineage(self) -> Iterator["PageObjectNode"]:
        """This node, then each ancestor up to the root."""
        node: Optional[PageObjectNode] = self
        while node is not None:
            yield node
            node = node.parent

    def descendants(self) -> Iterator["PageObjectNode"]:
        for child in self._children:
            yield child
            yield from child.descendants()

    def is_ancestor_of(self, other: "PageObjectNode") -> bool:
        return other is not self and any(node is self for node in other.lineage())


class PomGraph:
    """Registered page-object nodes. Read-only once the registry is built."""

    def __init__(self, nodes: Optional[List[PageObjectNode]] = None):
        self._nodes: List[PageObjectNode] = list(nodes or [])
        self._by_fixture: Dict[str, PageObjectNode] = {}
        for node in self._nodes:
            if node.fixture_name:
                self._by_fixture.setdefault(node.fixture_name, node)

    def __iter__(self) -> Iterator[PageObjectNode]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def by_fixture_name(self, fixture_name: str) -> Optional[PageObjectNode]:
        return self._by_fixture.get(fixture_name)


def _marker(role: StepRole):
    def decorator_factory(pattern, tags: Optional[str] = None) -> Callable:
        def decorator(fn: Callable) -> Callable:
            pending = list(getattr(fn, PENDING_STEPS_ATTR, []))
            # decorators apply bottom-up, keep the order they are written in
            pending.insert(0, PendingStep(role=role, pattern=pattern, tags=tags))
            setattr(fn, PENDING_STEPS_ATTR, pending)
            return fn

        return decorator

    return decorator_factory


given = _marker(StepRole.CONTEXT)
when = _marker(StepRole.ACTION)
then = _marker(StepRole.OUTCOME)
step = _marker(StepRole.UNKNOWN)

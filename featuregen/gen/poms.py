"""
Fixture resolution for decorator-style (page-object) steps.

A page-object step does not say which fixture instance runs it. That is only
known once every step and tag of the test is known, so step generation runs in
two stages: the suite builder produces ``PreparedStep``s where decorator steps
are left as holes, then ``fill_decorator_steps`` turns the holes into lines.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..exceptions import DecoratorFixtureError
from ..gherkin.models import PickleStep, Step
from ..models import StepRole
from ..steps.pom import PageObjectNode, PomGraph
from . import formatter
from .fixtures import FixtureSet
from .tags import build_fixture_tag, dedupe, extract_fixture_name


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedStep:
    keyword: str
    role: StepRole
    step: Step
    pickle_step: PickleStep
    line: Optional[str] = None
    pom_node: Optional[PageObjectNode] = None

    @property
    def is_hole(self) -> bool:
        return self.line is None and self.pom_node is not None


class UsedPoms:
    """Page-object nodes a test touches, remembering which were picked by tag."""

    def __init__(self, graph: PomGraph):
        self._graph = graph
        self._used: Dict[PageObjectNode, bool] = {}

    def __contains__(self, node: object) -> bool:
        return node in self._used

    def add(self, node: PageObjectNode, by_tag: bool = False) -> None:
        self._used[node] = self._used.get(node, False) or by_tag

    def add_by_fixture_name(self, fixture_name: str, by_tag: bool = False) -> None:
        node = self._graph.by_fixture_name(fixture_name)
        if node is not None:
            self.add(node, by_tag=by_tag)

    def add_by_tag(self, tag: str) -> None:
        fixture_name = extract_fixture_name(tag)
        if fixture_name:
            self.add_by_fixture_name(fixture_name, by_tag=True)

    def candidates(self, node: PageObjectNode) -> List[PageObjectNode]:
        """
        Used nodes that can run a step attached to ``node``.

        A used node qualifies when walking from it toward the root reaches
        ``node``. Tag selection narrows the list, then the most derived page
        objects win over their used ancestors.
        """
        found = [
            used
            for used in self._used
            if used.fixture_name and any(ancestor is node for ancestor in used.lineage())
        ]
        by_tag = [used for used in found if self._used[used]]
        if by_tag:
            found = by_tag
        return [used for used in found if not any(used.is_ancestor_of(other) for other in found)]

    def resolve_fixture_names(self, node: PageObjectNode) -> List[str]:
        return dedupe(candidate.fixture_name for candidate in self.candidates(node))


def _reachable_fixture_names(node: PageObjectNode) -> List[str]:
    nodes = [node, *node.descendants()]
    return dedupe(item.fixture_name for item in nodes if item.fixture_name)


def fill_decorator_steps(
    prepared: Sequence[PreparedStep],
    fixtures: FixtureSet,
    tags: Iterable[str],
    graph: PomGraph,
    uri: str,
) -> Tuple[List[str], FixtureSet]:
    """
    Resolve every decorator hole of one test.

    Returns the final step lines and a new fixture set extended with the
    resolved fixtures. Inputs are left untouched.
    """
    resolved = fixtures.copy()
    holes = [item for item in prepared if item.is_hole]
    if not holes:
        return [item.line or "" for item in prepared], resolved

    used = UsedPoms(graph)
    for hole in holes:
        used.add(hole.pom_node)
    for fixture_name in fixtures:
        used.add_by_fixture_name(fixture_name)
    for tag in tags:
        used.add_by_tag(tag)

    lines: List[str] = []
    for item in prepared:
        if not item.is_hole:
            lines.append(item.line or "")
            continue
        node = item.pom_node
        names = used.resolve_fixture_names(node)
        if len(names) != 1:
            suggestions = names if names else _reachable_fixture_names(node)
            raise DecoratorFixtureError(
                step_text=item.pickle_step.text,
                uri=uri,
                line=item.step.location.line,
                candidates=names,
                suggested_tags=[build_fixture_tag(name) for name in suggestions],
            )
        logger.debug("Resolved decorator step %r to fixture %s", item.pickle_step.text, names[0])
        lines.append(formatter.step(item.keyword, item.pickle_step.text, item.pickle_step.argument, names))
        resolved.add(names[0])
    return lines, resolved

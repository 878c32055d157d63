from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Type, Union

import parse
from cucumber_tag_expressions import parse as parse_tag_expression

from ..exceptions import RegistryFrozenError
from ..models import StepRole
from .introspection import extract_fixture_names
from .pom import PENDING_STEPS_ATTR, PageObjectNode, PomGraph


logger = logging.getLogger(__name__)

StepPattern = Union[str, "re.Pattern[str]"]


def combine_tag_expressions(*expressions: Optional[str]) -> Optional[str]:
    present = [expr for expr in expressions if expr]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return " and ".join(f"({expr})" for expr in present)


def _location(fn: Callable) -> str:
    code = getattr(fn, "__code__", None)
    if code is None:
        return ""
    return f"{code.co_filename}:{code.co_firstlineno}"


@dataclass(frozen=True, eq=False)
class StepBinding:
    """
    One registered step definition.

    String patterns use ``parse`` format syntax (``"I add {count:d} items"``),
    compiled patterns are regular expressions that must match the whole step
    text. The pattern and the tag expression are compiled on construction.
    """

    role: StepRole
    pattern: StepPattern
    fn: Callable
    tags: Optional[str] = None
    pom_node: Optional[PageObjectNode] = None
    runner_module: Optional[str] = None
    extra_types: Optional[Dict[str, Callable]] = None
    location: str = ""
    _matcher: Any = field(init=False, repr=False)
    _tag_expression: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str):
            matcher = parse.compile(self.pattern, extra_types=self.extra_types, case_sensitive=True)
            # parse builds its match regex on first use
            matcher.parse("")
        else:
            matcher = re.compile(self.pattern)
        object.__setattr__(self, "_matcher", matcher)
        tag_expression = parse_tag_expression(self.tags) if self.tags else None
        object.__setattr__(self, "_tag_expression", tag_expression)

    @property
    def is_decorator(self) -> bool:
        return self.pom_node is not None

    @property
    def has_custom_runner(self) -> bool:
        return bool(self.runner_module)

    @property
    def pattern_string(self) -> str:
        return self.pattern if isinstance(self.pattern, str) else self.pattern.pattern

    @property
    def fixture_names(self) -> List[str]:
        if self.is_decorator:
            return []
        return extract_fixture_names(self.fn)

    def match_text(self, text: str) -> Optional[Tuple[Tuple[Any, ...], Dict[str, Any]]]:
        if isinstance(self._matcher, parse.Parser):
            result = self._matcher.parse(text)
            if result is None:
                return None
            return tuple(result.fixed), dict(result.named)
        match = self._matcher.fullmatch(text)
        if match is None:
            return None
        named = match.groupdict()
        if named:
            return (), named
        return match.groups(), {}

    def matches_tags(self, tags: Sequence[str]) -> bool:
        if self._tag_expression is None:
            return True
        return self._tag_expression.evaluate(list(tags))

    def matches_role(self, role: Optional[StepRole]) -> bool:
        if role is None or role is StepRole.UNKNOWN or self.role is StepRole.UNKNOWN:
            return True
        return role is self.role


@dataclass(frozen=True)
class MatchResult:
    binding: StepBinding
    text: str
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)


class StepRegistry:
    """Frozen step bindings in registration order, plus the page-object graph."""

    def __init__(self, bindings: Iterable[StepBinding] = (), poms: Optional[PomGraph] = None):
        self._bindings: Tuple[StepBinding, ...] = tuple(bindings)
        self.poms = poms if poms is not None else PomGraph()

    def __iter__(self) -> Iterator[StepBinding]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def find(
        self,
        text: str,
        role: Optional[StepRole] = StepRole.UNKNOWN,
        tags: Sequence[str] = (),
    ) -> Optional[MatchResult]:
        """First binding in registration order that accepts the step, or None."""
        for binding in self._bindings:
            if not binding.matches_role(role) or not binding.matches_tags(tags):
                continue
            matched = binding.match_text(text)
            if matched is None:
                continue
            args, kwargs = matched
            return MatchResult(binding=binding, text=text, args=args, kwargs=kwargs)
        return None


class _Store:
    def __init__(self) -> None:
        self.bindings: List[StepBinding] = []
        self.nodes: List[PageObjectNode] = []
        self.node_by_class: Dict[type, PageObjectNode] = {}
        self.frozen = False


class StepRegistryBuilder:
    """
    Collects step definitions at import time.

    ``build()`` freezes the collected bindings into a ``StepRegistry``. It must
    run before any document is compiled; registering afterwards is an error.
    Builders made with ``scoped()`` share storage with their parent and only
    differ in the defaults they apply.
    """

    def __init__(
        self,
        tags: Optional[str] = None,
        runner_module: Optional[str] = None,
        extra_types: Optional[Dict[str, Callable]] = None,
        _store: Optional[_Store] = None,
    ):
        self.tags = tags
        self.runner_module = runner_module
        self.extra_types = extra_types
        self._store = _store or _Store()

    def scoped(
        self,
        tags: Optional[str] = None,
        runner_module: Optional[str] = None,
        extra_types: Optional[Dict[str, Callable]] = None,
    ) -> "StepRegistryBuilder":
        return StepRegistryBuilder(
            tags=combine_tag_expressions(self.tags, tags),
            runner_module=runner_module or self.runner_module,
            extra_types={**(self.extra_types or {}), **(extra_types or {})} or None,
            _store=self._store,
        )

    @property
    def frozen(self) -> bool:
        return self._store.frozen

    def add(
        self,
        role: StepRole,
        pattern: StepPattern,
        fn: Callable,
        tags: Optional[str] = None,
        pom_node: Optional[PageObjectNode] = None,
    ) -> StepBinding:
        if self._store.frozen:
            raise RegistryFrozenError(
                f"Cannot register step {pattern!r}: the step registry is already built"
            )
        binding = StepBinding(
            role=role,
            pattern=pattern,
            fn=fn,
            tags=combine_tag_expressions(self.tags, tags),
            pom_node=pom_node,
            runner_module=self.runner_module,
            extra_types=self.extra_types,
            location=_location(fn),
        )
        self._store.bindings.append(binding)
        return binding

    def _decorator(self, role: StepRole, pattern: StepPattern, tags: Optional[str]) -> Callable:
        def decorator(fn: Callable) -> Callable:
            self.add(role, pattern, fn, tags=tags)
            return fn

        return decorator

    def given(self, pattern: StepPattern, tags: Optional[str] = None) -> Callable:
        return self._decorator(StepRole.CONTEXT, pattern, tags)

    def when(self, pattern: StepPattern, tags: Optional[str] = None) -> Callable:
        return self._decorator(StepRole.ACTION, pattern, tags)

    def then(self, pattern: StepPattern, tags: Optional[str] = None) -> Callable:
        return self._decorator(StepRole.OUTCOME, pattern, tags)

    def step(self, pattern: StepPattern, tags: Optional[str] = None) -> Callable:
        return self._decorator(StepRole.UNKNOWN, pattern, tags)

    def page_object(self, fixture_name: str = "", tags: Optional[str] = None) -> Callable:
        """
        Register a page-object class.

        Methods marked with ``featuregen.steps.pom.given`` and friends become
        decorator-style bindings attached to the class node. ``fixture_name``
        is the pytest fixture that provides an instance of the class; abstract
        bases may leave it empty.
        """

        def decorator(cls: Type) -> Type:
            if self._store.frozen:
                raise RegistryFrozenError(
                    f"Cannot register page object {cls.__qualname__}: the step registry is already built"
                )
            parent = self._registered_base(cls)
            node = PageObjectNode(class_name=cls.__qualname__, fixture_name=fixture_name, parent=parent)
            if parent is not None:
                parent._children.append(node)
            self._store.nodes.append(node)
            self._store.node_by_class[cls] = node
            for member in vars(cls).values():
                for pending in getattr(member, PENDING_STEPS_ATTR, []):
                    self.add(
                        pending.role,
                        pending.pattern,
                        member,
                        tags=combine_tag_expressions(tags, pending.tags),
                        pom_node=node,
                    )
            return cls

        return decorator

    def _registered_base(self, cls: Type) -> Optional[PageObjectNode]:
        for base in cls.__mro__[1:]:
            node = self._store.node_by_class.get(base)
            if node is not None:
                return node
        return None

    def build(self) -> StepRegistry:
        self._store.frozen = True
        logger.debug(
            "Built step registry: %d bindings, %d page objects",
            len(self._store.bindings),
            len(self._store.nodes),
        )
        return StepRegistry(self._store.bindings, PomGraph(self._store.nodes))

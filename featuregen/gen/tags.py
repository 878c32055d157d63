from __future__ import annotations

import keyword
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from ..exceptions import MalformedDocumentError
from ..gherkin.models import Tag


logger = logging.getLogger(__name__)


TEST_KEY_SEPARATOR = "|"
FIXTURE_TAG_PREFIX = "@fixture:"


def build_fixture_tag(fixture_name: str) -> str:
    return f"{FIXTURE_TAG_PREFIX}{fixture_name}"


def extract_fixture_name(tag: str) -> Optional[str]:
    if tag.startswith(FIXTURE_TAG_PREFIX):
        return tag[len(FIXTURE_TAG_PREFIX):] or None
    return None


def check_fixture_tags(tags: Iterable[Tag], uri: str) -> None:
    """Raise when a ``@fixture:`` tag does not name a valid fixture parameter."""
    for tag in tags:
        name = extract_fixture_name(tag.name)
        if name is None or (name.isidentifier() and not keyword.iskeyword(name)):
            continue
        where = f"{uri}:{tag.location.line}" if tag.location else uri
        raise MalformedDocumentError(f"Invalid fixture tag {tag.name} in {where}: {name!r} is not an identifier")


def tag_names(tags: Iterable[Tag]) -> List[str]:
    return [tag.name for tag in tags]


def dedupe(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def tag_fixture_names(tags: Iterable[str]) -> List[str]:
    """Fixtures selected with ``@fixture:<name>`` tags."""
    return dedupe(name for name in map(extract_fixture_name, tags) if name)


@dataclass(frozen=True)
class Flags:
    only: bool = False
    skip: bool = False
    fixme: bool = False
    slow: bool = False
    serial: bool = False

    @classmethod
    def from_tags(cls, tags: Iterable[Tag]) -> "Flags":
        names = set(tag_names(tags))
        return cls(
            only="@only" in names,
            skip="@skip" in names,
            fixme="@fixme" in names,
            slow="@slow" in names,
            serial="@serial" in names or "@mode:serial" in names,
        )


@dataclass(frozen=True)
class Ancestor:
    """Name and own tags of an enclosing feature, rule or outline."""

    name: str
    tags: Sequence[str] = ()

    @classmethod
    def of(cls, node) -> "Ancestor":
        return cls(name=node.name, tags=tuple(tag_names(node.tags)))


def visible_tags(ancestors: Sequence[Ancestor], own_tags: Iterable[str] = ()) -> List[str]:
    collected: List[str] = []
    for ancestor in ancestors:
        collected.extend(ancestor.tags)
    collected.extend(own_tags)
    return dedupe(collected)


def build_test_key(ancestors: Sequence[Ancestor], title: str) -> str:
    return TEST_KEY_SEPARATOR.join([ancestor.name for ancestor in ancestors] + [title])


class FileTags:
    """Tags of every generated test in one file, keyed by title path."""

    def __init__(self) -> None:
        self.tags_map: Dict[str, List[str]] = {}

    def register_test_tags(
        self,
        ancestors: Sequence[Ancestor],
        title: str,
        own_tags: Iterable[Tag] = (),
    ) -> List[str]:
        tags = visible_tags(ancestors, tag_names(own_tags))
        if not tags:
            return tags
        key = build_test_key(ancestors, title)
        registered = self.tags_map.setdefault(key, tags)
        if registered is not tags and registered != tags:
            logger.warning("Tests share the title path %r, bdd_tags keeps the tags of the first one", key)
        return tags

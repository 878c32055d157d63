"""
Pure text formatting of generated pytest modules.

Suites are test classes, tests are methods, backgrounds are autouse fixtures.
Every unit is named after its title plus its source line, which keeps names
unique inside one feature file.
"""

from __future__ import annotations

import json
import re
from typing import Dict, Iterable, List, Optional, Sequence

from ..gherkin.models import PickleStepArgument
from .tags import TEST_KEY_SEPARATOR, Flags


INDENT = "    "


def quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def slugify(title: str) -> str:
    slug = re.sub(r"\W+", "_", title).strip("_").lower()
    return slug or "untitled"


def _indent(lines: Iterable[str]) -> List[str]:
    return [INDENT + line if line else "" for line in lines]


def _markers(title: str, flags: Flags) -> List[str]:
    lines = [f"@pytest.mark.bdd_title({quote(title)})"]
    if flags.only:
        lines.append("@pytest.mark.only")
    if flags.skip:
        lines.append("@pytest.mark.skip")
    if flags.fixme:
        lines.append('@pytest.mark.skip(reason="fixme")')
    if flags.slow:
        lines.append("@pytest.mark.slow")
    if flags.serial:
        lines.append("@pytest.mark.serial")
    return lines


def _signature(name: str, fixtures: Iterable[str]) -> str:
    return f"def {name}({', '.join(['self', *fixtures])}):"


def file_header(uri: str, imports: Sequence[str] = ()) -> List[str]:
    lines = [
        f"# Generated from: {uri}",
        "# Do not edit, regenerate with `featuregen gen`.",
        "import pytest",
    ]
    if imports:
        lines.append("")
        lines.extend(f"from {module} import *  # noqa: F401,F403" for module in imports)
    lines.extend(["", ""])
    return lines


def suite(title: str, line: int, body: Sequence[str], flags: Flags = Flags()) -> List[str]:
    return [
        *_markers(title, flags),
        f"class Test_{slugify(title)}_L{line}:",
        *_indent(body or ["pass"]),
        "",
    ]


def test(
    title: str,
    line: int,
    fixtures: Iterable[str],
    body: Sequence[str],
    flags: Flags = Flags(),
) -> List[str]:
    return [
        *_markers(title, flags),
        _signature(f"test_{slugify(title)}_L{line}", fixtures),
        *_indent(body or ["pass"]),
        "",
    ]


def before_each(line: int, fixtures: Iterable[str], body: Sequence[str]) -> List[str]:
    return [
        "@pytest.fixture(autouse=True)",
        _signature(f"before_each_L{line}", fixtures),
        *_indent(body or ["pass"]),
        "",
    ]


def step(
    keyword: str,
    text: str,
    argument: Optional[PickleStepArgument],
    fixture_names: Iterable[str],
) -> str:
    parts = [quote(text)]
    if argument is not None:
        data = argument.model_dump(by_alias=True, exclude_none=True)
        parts.append(f"argument={json.dumps(data, ensure_ascii=False)}")
    parts.extend(f"{name}={name}" for name in fixture_names)
    return f"{keyword}({', '.join(parts)})"


def missing_step(keyword: str, text: str) -> str:
    message = f"Missing step: {keyword} {text}"
    return f"pytest.fail({quote(message)})"


def tags_fixture(tags_map: Dict[str, List[str]]) -> List[str]:
    if tags_map:
        entries = [
            f"{INDENT}{quote(key)}: [{', '.join(quote(tag) for tag in tags)}],"
            for key, tags in tags_map.items()
        ]
        lines = ["BDD_TAGS = {", *entries, "}"]
    else:
        lines = ["BDD_TAGS = {}"]
    return [
        *lines,
        "",
        "",
        "@pytest.fixture",
        "def bdd_tags(request):",
        f'{INDENT}titles = [marker.args[0] for marker in request.node.iter_markers("bdd_title")]',
        f"{INDENT}return BDD_TAGS.get({quote(TEST_KEY_SEPARATOR)}.join(reversed(titles)), [])",
    ]

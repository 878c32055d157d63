from __future__ import annotations

import re
from typing import Iterable, List, Tuple

from ..models import StepRole, UndefinedStep


_DECORATORS = {
    StepRole.CONTEXT: "given",
    StepRole.ACTION: "when",
    StepRole.OUTCOME: "then",
    StepRole.UNKNOWN: "step",
}

_TOKEN_RE = re.compile(r'"[^"]*"|\b-?\d+\b')


def snippet_pattern(text: str) -> Tuple[str, int]:
    """
    Turn step text into a ``parse`` pattern.

    Quoted strings become ``"{}"`` and integers ``{:d}``. Literal braces are
    escaped. Returns the pattern and the number of placeholders.
    """
    parts: List[str] = []
    count = 0
    position = 0
    for match in _TOKEN_RE.finditer(text):
        parts.append(_escape(text[position:match.start()]))
        parts.append('"{}"' if match.group(0).startswith('"') else "{:d}")
        count += 1
        position = match.end()
    parts.append(_escape(text[position:]))
    return "".join(parts), count


def _escape(text: str) -> str:
    return text.replace("{", "{{").replace("}", "}}")


def build_snippet(role: StepRole, text: str) -> str:
    pattern, count = snippet_pattern(text)
    params = ", ".join(f"arg{index}" for index in range(1, count + 1))
    decorator = _DECORATORS[role]
    literal = pattern.replace("\\", "\\\\").replace("'", "\\'")
    return "\n".join(
        [
            f"@{decorator}('{literal}')",
            f"def step_impl({params}):",
            f"    raise NotImplementedError('{decorator}: {literal}')",
        ]
    )


def build_snippets(undefined_steps: Iterable[UndefinedStep]) -> List[str]:
    """One snippet per distinct (role, pattern), in first-seen order."""
    seen = set()
    snippets: List[str] = []
    for undefined in undefined_steps:
        pattern, _ = snippet_pattern(undefined.text)
        key = (undefined.role, pattern)
        if key in seen:
            continue
        seen.add(key)
        snippets.append(build_snippet(undefined.role, undefined.text))
    return snippets

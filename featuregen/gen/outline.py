from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping

from ..gherkin.models import Examples, GherkinDocument, Scenario, TableRow


TITLE_FORMAT_PREFIX = "# title-format:"
INDEX_PLACEHOLDER = "_index_"

_PLACEHOLDER_RE = re.compile(r"<([^<>]+)>|" + INDEX_PLACEHOLDER)


def render_title(title_format: str, params: Mapping[str, Any]) -> str:
    """
    Fill ``<name>`` placeholders from ``params``.

    The bare ``_index_`` token is also replaced. Placeholders without a value
    are kept as written.
    """

    def replace(match: "re.Match[str]") -> str:
        key = match.group(1) if match.group(1) is not None else INDEX_PLACEHOLDER
        if key in params:
            return str(params[key])
        return match.group(0)

    return _PLACEHOLDER_RE.sub(replace, title_format)


def examples_title_format(document: GherkinDocument, examples: Examples, default: str) -> str:
    comment = document.comment_at(examples.location.line - 1)
    text = comment.text.strip() if comment else ""
    if text.startswith(TITLE_FORMAT_PREFIX):
        return text[len(TITLE_FORMAT_PREFIX):].strip()
    return default


def row_params(examples: Examples, row: TableRow, index: int) -> Dict[str, Any]:
    params: Dict[str, Any] = {INDEX_PLACEHOLDER: index}
    for column, cell in zip(examples.column_names, row.cells):
        if column:
            params[column] = cell.value
    return params


@dataclass(frozen=True)
class ExampleRow:
    examples: Examples
    row: TableRow
    index: int
    title: str


def expand_outline(
    document: GherkinDocument,
    outline: Scenario,
    default_title_format: str,
) -> Iterator[ExampleRow]:
    """One entry per data row of every Examples block, in document order."""
    index = 0
    for examples in outline.examples:
        title_format = examples_title_format(document, examples, default_title_format)
        for row in examples.table_body:
            index += 1
            title = render_title(title_format, row_params(examples, row, index))
            yield ExampleRow(examples=examples, row=row, index=index, title=title)

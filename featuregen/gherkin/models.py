"""
Pydantic models for parsed Gherkin documents and pickles.

Field names follow the message protocol emitted by ``gherkin-official``
(camelCase on the wire, snake_case in Python), so the parser output validates
without any reshaping.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Node(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class Location(_Node):
    line: int
    column: Optional[int] = None


class Tag(_Node):
    name: str
    id: str = ""
    location: Optional[Location] = None


class Comment(_Node):
    location: Location
    text: str


class TableCell(_Node):
    value: str
    location: Optional[Location] = None


class TableRow(_Node):
    id: str
    location: Location
    cells: List[TableCell] = Field(default_factory=list)


class DataTable(_Node):
    location: Optional[Location] = None
    rows: List[TableRow] = Field(default_factory=list)


class DocString(_Node):
    content: str
    location: Optional[Location] = None
    delimiter: str = '"""'
    media_type: Optional[str] = None


class Step(_Node):
    id: str
    location: Location
    keyword: str
    text: str
    keyword_type: Optional[str] = None
    doc_string: Optional[DocString] = None
    data_table: Optional[DataTable] = None


class Examples(_Node):
    id: str
    location: Location
    keyword: str = "Examples"
    name: str = ""
    description: str = ""
    tags: List[Tag] = Field(default_factory=list)
    table_header: Optional[TableRow] = None
    table_body: List[TableRow] = Field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        if self.table_header is None:
            return []
        return [cell.value for cell in self.table_header.cells]


class Background(_Node):
    id: str
    location: Location
    keyword: str = "Background"
    name: str = ""
    description: str = ""
    steps: List[Step] = Field(default_factory=list)


class Scenario(_Node):
    id: str
    location: Location
    keyword: str = "Scenario"
    name: str = ""
    description: str = ""
    tags: List[Tag] = Field(default_factory=list)
    steps: List[Step] = Field(default_factory=list)
    examples: List[Examples] = Field(default_factory=list)

    @property
    def is_outline(self) -> bool:
        # keyword text is localized, the presence of Examples is not
        return bool(self.examples)


class RuleChild(_Node):
    background: Optional[Background] = None
    scenario: Optional[Scenario] = None


class Rule(_Node):
    id: str
    location: Location
    keyword: str = "Rule"
    name: str = ""
    description: str = ""
    tags: List[Tag] = Field(default_factory=list)
    children: List[RuleChild] = Field(default_factory=list)


class FeatureChild(_Node):
    rule: Optional[Rule] = None
    background: Optional[Background] = None
    scenario: Optional[Scenario] = None


class Feature(_Node):
    location: Location
    language: str = "en"
    keyword: str = "Feature"
    name: str = ""
    description: str = ""
    tags: List[Tag] = Field(default_factory=list)
    children: List[FeatureChild] = Field(default_factory=list)


class GherkinDocument(_Node):
    uri: Optional[str] = None
    feature: Optional[Feature] = None
    comments: List[Comment] = Field(default_factory=list)

    def comment_at(self, line: int) -> Optional[Comment]:
        for comment in self.comments:
            if comment.location.line == line:
                return comment
        return None


class PickleDocString(_Node):
    content: str
    media_type: Optional[str] = None


class PickleTableCell(_Node):
    value: str


class PickleTableRow(_Node):
    cells: List[PickleTableCell] = Field(default_factory=list)


class PickleTable(_Node):
    rows: List[PickleTableRow] = Field(default_factory=list)


class PickleStepArgument(_Node):
    doc_string: Optional[PickleDocString] = None
    data_table: Optional[PickleTable] = None


class PickleStep(_Node):
    id: str
    text: str
    type: Optional[str] = None
    ast_node_ids: List[str] = Field(default_factory=list)
    argument: Optional[PickleStepArgument] = None


class PickleTag(_Node):
    name: str
    ast_node_id: str = ""


class Pickle(_Node):
    id: str
    uri: str = ""
    name: str = ""
    language: str = "en"
    steps: List[PickleStep] = Field(default_factory=list)
    tags: List[PickleTag] = Field(default_factory=list)
    ast_node_ids: List[str] = Field(default_factory=list)

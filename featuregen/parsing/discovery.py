from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from gherkin.errors import ParserError
from gherkin.parser import Parser
from gherkin.pickles.compiler import Compiler
from gherkin.token_scanner import TokenScanner
from pathspec import PathSpec

from ..exceptions import MalformedDocumentError
from ..gherkin.models import GherkinDocument, Pickle


logger = logging.getLogger(__name__)

FEATURE_SUFFIX = ".feature"


@dataclass(frozen=True)
class LoadedDocument:
    path: Path
    document: GherkinDocument
    pickles: List[Pickle]


def _build_ignore_spec(ignore_globs: List[str]) -> PathSpec:
    return PathSpec.from_lines("gitwildmatch", ignore_globs)


def discover_feature_files(root: Path, ignore_globs: List[str]) -> List[Path]:
    ignore_spec = _build_ignore_spec(ignore_globs)
    found: List[Path] = []
    for path in root.rglob(f"*{FEATURE_SUFFIX}"):
        rel = path.relative_to(root)
        if ignore_spec.match_file(rel.as_posix()):
            continue
        if path.is_file():
            found.append(path)
    return sorted(found)


def parse_document(text: str, uri: str) -> LoadedDocument:
    """Parse feature text into a document and its pickles."""
    try:
        raw = Parser().parse(TokenScanner(text))
    except ParserError as exc:
        raise MalformedDocumentError(f"Cannot parse {uri}: {exc}") from exc
    raw["uri"] = uri
    pickles = Compiler().compile(raw)
    return LoadedDocument(
        path=Path(uri),
        document=GherkinDocument.model_validate(raw),
        pickles=[Pickle.model_validate(pickle) for pickle in pickles],
    )


def document_uri(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix() if path.is_relative_to(root) else path.as_posix()


def load_document(path: Path, root: Path) -> LoadedDocument:
    uri = document_uri(path, root)
    logger.debug("Parsing %s", uri)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedDocumentError(f"Cannot read {uri}: {exc}") from exc
    loaded = parse_document(text, uri)
    return LoadedDocument(path=path, document=loaded.document, pickles=loaded.pickles)

"""
Compile one Gherkin document into a pytest module.

The document tree is walked depth first. Features and rules become test
classes, backgrounds become autouse fixtures, scenarios become test methods
and outlines become classes holding one test per example row. Step lines of
each test are prepared first and finalized once the whole test is known, see
``poms.fill_decorator_steps``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..config import AppConfig
from ..exceptions import MalformedDocumentError, PickleStepNotFoundError
from ..gherkin.keywords import KeywordTable
from ..gherkin.models import (
    Background,
    Feature,
    FeatureChild,
    GherkinDocument,
    Pickle,
    PickleStep,
    Rule,
    RuleChild,
    Scenario,
    Step,
)
from ..models import CompileResult, StepRole, UndefinedStep
from ..steps.bindings import StepRegistry
from . import formatter
from .fixtures import FixtureSet
from .outline import expand_outline
from .poms import PreparedStep, fill_decorator_steps
from .tags import Ancestor, FileTags, Flags, check_fixture_tags, tag_fixture_names, visible_tags


logger = logging.getLogger(__name__)

Ancestors = Tuple[Ancestor, ...]


class FeatureFile:
    def __init__(
        self,
        document: GherkinDocument,
        pickles: Iterable[Pickle],
        registry: StepRegistry,
        config: Optional[AppConfig] = None,
        output_path: Optional[Union[str, Path]] = None,
    ):
        self.document = document
        self.pickles = list(pickles)
        self.registry = registry
        self.config = config or AppConfig()
        self.output_path = Path(output_path) if output_path else None
        self.lines: List[str] = []
        self.tags = FileTags()
        self.runner_modules: List[str] = []
        self.undefined_steps: List[UndefinedStep] = []
        self._keywords: Optional[KeywordTable] = None
        self._pickle_steps: Dict[str, List[PickleStep]] = {}
        for pickle in self.pickles:
            for pickle_step in pickle.steps:
                for node_id in pickle_step.ast_node_ids:
                    self._pickle_steps.setdefault(node_id, []).append(pickle_step)

    @property
    def source_file(self) -> str:
        if not self.document.uri:
            raise MalformedDocumentError("Document without uri")
        return self.document.uri

    @property
    def language(self) -> str:
        feature = self.document.feature
        return feature.language if feature else "en"

    @property
    def keywords(self) -> KeywordTable:
        if self._keywords is None:
            raise RuntimeError("Keyword table is loaded by build()")
        return self._keywords

    @property
    def content(self) -> str:
        return "\n".join(self.lines) + "\n"

    @property
    def has_custom_runner(self) -> bool:
        return bool(self.runner_modules)

    def build(self) -> "FeatureFile":
        feature = self.document.feature
        if feature is None:
            raise MalformedDocumentError(f"Document without feature: {self.source_file}")
        self._keywords = KeywordTable.for_language(self.language)
        self.tags = FileTags()
        self.runner_modules = []
        self.undefined_steps = []
        root = self._suite(feature, ())
        self.lines = [
            *formatter.file_header(self.source_file, self._imports()),
            *root,
            "",
            *formatter.tags_fixture(self.tags.tags_map),
        ]
        logger.debug(
            "Compiled %s: %d lines, %d undefined steps",
            self.source_file,
            len(self.lines),
            len(self.undefined_steps),
        )
        return self

    def save(self) -> Path:
        if self.output_path is None:
            raise ValueError(f"No output path for {self.source_file}")
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_path.write_text(self.content, encoding="utf-8")
        return self.output_path

    def result(self) -> CompileResult:
        return CompileResult(
            uri=self.source_file,
            output_path=str(self.output_path) if self.output_path else None,
            content=self.content,
            undefined_steps=list(self.undefined_steps),
        )

    def _imports(self) -> List[str]:
        imports = [self.config.import_fixtures_from] if self.config.import_fixtures_from else []
        imports.extend(module for module in self.runner_modules if module not in imports)
        return imports

    def _suite(self, node: Union[Feature, Rule], ancestors: Ancestors) -> List[str]:
        check_fixture_tags(node.tags, self.source_file)
        scope = (*ancestors, Ancestor.of(node))
        lines: List[str] = []
        for child in node.children:
            lines.extend(self._suite_child(child, scope))
        return formatter.suite(node.name, node.location.line, lines, Flags.from_tags(node.tags))

    def _suite_child(self, child: Union[FeatureChild, RuleChild], ancestors: Ancestors) -> List[str]:
        rule = getattr(child, "rule", None)
        if rule is not None:
            return self._suite(rule, ancestors)
        if child.background is not None:
            return self._before_each(child.background, ancestors)
        if child.scenario is not None:
            if child.scenario.is_outline:
                return self._outline_suite(child.scenario, ancestors)
            return self._test(child.scenario, ancestors)
        raise MalformedDocumentError(f"Empty child in {self.source_file}: {child!r}")

    def _before_each(self, background: Background, ancestors: Ancestors) -> List[str]:
        fixtures, lines = self._steps(background.steps, visible_tags(ancestors))
        return formatter.before_each(background.location.line, fixtures, lines)

    def _test(self, scenario: Scenario, ancestors: Ancestors) -> List[str]:
        check_fixture_tags(scenario.tags, self.source_file)
        tags = self.tags.register_test_tags(ancestors, scenario.name, scenario.tags)
        fixtures, lines = self._steps(scenario.steps, tags)
        return formatter.test(
            scenario.name, scenario.location.line, fixtures, lines, Flags.from_tags(scenario.tags)
        )

    def _outline_suite(self, outline: Scenario, ancestors: Ancestors) -> List[str]:
        check_fixture_tags(outline.tags, self.source_file)
        for examples in outline.examples:
            check_fixture_tags(examples.tags, self.source_file)
        scope = (*ancestors, Ancestor.of(outline))
        lines: List[str] = []
        for example in expand_outline(self.document, outline, self.config.examples_title_format):
            tags = self.tags.register_test_tags(scope, example.title, example.examples.tags)
            fixtures, body = self._steps(outline.steps, tags, example.row.id)
            lines.extend(
                formatter.test(
                    example.title,
                    example.row.location.line,
                    fixtures,
                    body,
                    Flags.from_tags(example.examples.tags),
                )
            )
        return formatter.suite(outline.name, outline.location.line, lines, Flags.from_tags(outline.tags))

    def _steps(
        self,
        steps: Sequence[Step],
        tags: Sequence[str],
        row_id: Optional[str] = None,
    ) -> Tuple[List[str], List[str]]:
        """Fixture names and body lines for one test or hook."""
        fixtures = FixtureSet()
        prepared: List[PreparedStep] = []
        previous: Optional[StepRole] = None
        for step in steps:
            item, step_fixtures = self._prepare_step(step, previous, tags, row_id)
            previous = item.role
            fixtures.add(item.keyword)
            fixtures.update(step_fixtures)
            prepared.append(item)
        fixtures.update(tag_fixture_names(tags))
        lines, fixtures = fill_decorator_steps(
            prepared, fixtures, tags, self.registry.poms, self.source_file
        )
        return fixtures.as_list(), lines

    def _prepare_step(
        self,
        step: Step,
        previous: Optional[StepRole],
        tags: Sequence[str],
        row_id: Optional[str],
    ) -> Tuple[PreparedStep, List[str]]:
        pickle_step = self._pickle_step(step, row_id)
        role = self.keywords.classify(step.keyword, previous)
        keyword = self.keywords.canonical(step.keyword)
        match = self.registry.find(pickle_step.text, role, tags)

        if match is None:
            logger.debug("Undefined step %r in %s:%d", pickle_step.text, self.source_file, step.location.line)
            self.undefined_steps.append(
                UndefinedStep(role=role, step=step, pickle_step=pickle_step, uri=self.source_file)
            )
            line = formatter.missing_step(keyword, pickle_step.text)
            return PreparedStep(keyword, role, step, pickle_step, line=line), []

        binding = match.binding
        if binding.has_custom_runner and binding.runner_module not in self.runner_modules:
            self.runner_modules.append(binding.runner_module)
        if binding.is_decorator:
            return PreparedStep(keyword, role, step, pickle_step, pom_node=binding.pom_node), []

        fixture_names = binding.fixture_names
        line = formatter.step(keyword, pickle_step.text, pickle_step.argument, fixture_names)
        return PreparedStep(keyword, role, step, pickle_step, line=line), fixture_names

    def _pickle_step(self, step: Step, row_id: Optional[str]) -> PickleStep:
        for pickle_step in self._pickle_steps.get(step.id, []):
            if row_id is None or row_id in pickle_step.ast_node_ids:
                return pickle_step
        raise PickleStepNotFoundError(step.text, step.id)


def compile_document(
    document: GherkinDocument,
    pickles: Iterable[Pickle],
    registry: StepRegistry,
    config: Optional[AppConfig] = None,
    output_path: Optional[Union[str, Path]] = None,
) -> FeatureFile:
    return FeatureFile(document, pickles, registry, config, output_path).build()

"""Shared pytest fixtures for featuregen tests."""

from textwrap import dedent
from typing import Callable, Optional

import pytest

from featuregen.config import AppConfig
from featuregen.gen.feature_file import FeatureFile
from featuregen.parsing.discovery import LoadedDocument, parse_document
from featuregen.steps.bindings import StepRegistry, StepRegistryBuilder


@pytest.fixture
def config() -> AppConfig:
    """Configuration that ignores the environment and any .env file."""
    return AppConfig(_env_file=None)


@pytest.fixture
def builder() -> StepRegistryBuilder:
    return StepRegistryBuilder()


@pytest.fixture
def parse_feature() -> Callable[..., LoadedDocument]:
    """Parse dedented feature text with gherkin-official."""

    def _parse(text: str, uri: str = "features/sample.feature") -> LoadedDocument:
        return parse_document(dedent(text).lstrip("\n"), uri)

    return _parse


@pytest.fixture
def compile_feature(parse_feature, config) -> Callable[..., FeatureFile]:
    """Parse feature text and compile it against a registry."""

    def _compile(
        text: str,
        registry: StepRegistry,
        app_config: Optional[AppConfig] = None,
        uri: str = "features/sample.feature",
    ) -> FeatureFile:
        loaded = parse_feature(text, uri)
        return FeatureFile(loaded.document, loaded.pickles, registry, app_config or config).build()

    return _compile

"""
Errors raised while compiling feature documents.

Everything here is a hard error: it aborts compilation of the current
document. Undefined steps are not errors, they are collected as diagnostics.
"""

from __future__ import annotations

from typing import List, Optional


class FeatureGenError(Exception):
    """Base class for featuregen errors."""


class MalformedDocumentError(FeatureGenError):
    """The parsed document does not have the shape the compiler expects."""


class PickleStepNotFoundError(MalformedDocumentError):
    def __init__(self, step_text: str, step_id: str):
        super().__init__(f"Pickle step not found for step: {step_text}")
        self.step_text = step_text
        self.step_id = step_id


class UnknownLanguageError(FeatureGenError):
    def __init__(self, language: str):
        super().__init__(f"Unsupported feature language: {language}")
        self.language = language


class UnknownKeywordError(FeatureGenError):
    def __init__(self, keyword: str, language: str):
        super().__init__(f"Keyword not found: {keyword} (language: {language})")
        self.keyword = keyword
        self.language = language


class RegistryFrozenError(FeatureGenError):
    """Raised when a step is registered after the registry was built."""


class DecoratorFixtureError(FeatureGenError):
    """
    Raised when a page-object step cannot be bound to exactly one fixture.

    Carries everything the author needs to fix the feature file: the step
    text, where it is, which fixtures matched and which tags would select one.
    """

    def __init__(
        self,
        step_text: str,
        uri: str,
        line: Optional[int],
        candidates: List[str],
        suggested_tags: List[str],
    ):
        where = f"{uri}:{line}" if line else uri
        message = f'Can\'t guess fixture for decorator step "{step_text}" in file: {where}.'
        if suggested_tags:
            message += (
                f" Please set one of the following tags ({', '.join(suggested_tags)})"
                " or refactor your Page Object classes."
            )
        else:
            message += " No page object with a fixture name can run it, refactor your Page Object classes."
        super().__init__(message)
        self.step_text = step_text
        self.uri = uri
        self.line = line
        self.candidates = candidates
        self.suggested_tags = suggested_tags

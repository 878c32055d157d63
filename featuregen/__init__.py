"""
featuregen: compile Gherkin feature files into pytest modules.

Step definitions register on the default builder at import time::

    from featuregen import given, when, then

    @given("a user named {name}")
    def create_user(name, *, db): ...

The CLI builds the registry once all step modules are imported.
"""

from __future__ import annotations

from .steps import pom
from .steps.bindings import MatchResult, StepBinding, StepRegistry, StepRegistryBuilder


default_builder = StepRegistryBuilder()

given = default_builder.given
when = default_builder.when
then = default_builder.then
step = default_builder.step
page_object = default_builder.page_object

__all__ = [
    "MatchResult",
    "StepBinding",
    "StepRegistry",
    "StepRegistryBuilder",
    "default_builder",
    "given",
    "page_object",
    "pom",
    "step",
    "then",
    "when",
]

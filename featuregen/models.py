from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .gherkin.models import PickleStep, Step


class StepRole(str, Enum):
    CONTEXT = "context"
    ACTION = "action"
    OUTCOME = "outcome"
    UNKNOWN = "unknown"


class UndefinedStep(BaseModel):
    role: StepRole
    step: Step
    pickle_step: PickleStep
    uri: str = ""

    @property
    def text(self) -> str:
        return self.pickle_step.text

    @property
    def line(self) -> int:
        return self.step.location.line


class CompileResult(BaseModel):
    uri: str
    output_path: Optional[str] = None
    content: str = ""
    undefined_steps: List[UndefinedStep] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

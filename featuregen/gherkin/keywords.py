from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from gherkin.dialect import Dialect

from ..exceptions import UnknownKeywordError, UnknownLanguageError
from ..models import StepRole


BULLET = "*"

PRIMARY_ROLES = {
    "Given": StepRole.CONTEXT,
    "When": StepRole.ACTION,
    "Then": StepRole.OUTCOME,
}


@dataclass(frozen=True)
class KeywordTable:
    """
    Localized step keywords of one Gherkin dialect.

    ``keywords`` maps each stripped localized keyword to its English form.
    Primary keywords are registered before conjunctions, so a word that a
    dialect uses for both keeps its primary meaning.
    """

    language: str
    keywords: Dict[str, str]

    @classmethod
    def for_language(cls, language: str) -> "KeywordTable":
        dialect = Dialect.for_name(language)
        if dialect is None:
            raise UnknownLanguageError(language)
        groups = [
            ("Given", dialect.given_keywords),
            ("When", dialect.when_keywords),
            ("Then", dialect.then_keywords),
            ("And", dialect.and_keywords),
            ("But", dialect.but_keywords),
        ]
        keywords: Dict[str, str] = {}
        for english, localized in groups:
            for word in localized:
                word = word.strip()
                if word == BULLET:
                    continue
                keywords.setdefault(word, english)
        return cls(language=language, keywords=keywords)

    def canonical(self, raw_keyword: str) -> str:
        """English keyword for a raw step keyword. The bullet renders as ``And``."""
        keyword = raw_keyword.strip()
        if keyword == BULLET:
            return "And"
        english = self.keywords.get(keyword)
        if english is None:
            raise UnknownKeywordError(keyword, self.language)
        return english

    def classify(self, raw_keyword: str, previous: Optional[StepRole] = None) -> StepRole:
        english = self.canonical(raw_keyword)
        role = PRIMARY_ROLES.get(english)
        if role is not None:
            return role
        return previous or StepRole.UNKNOWN

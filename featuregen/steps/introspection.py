from __future__ import annotations

import inspect
from typing import Callable, List, Optional


def extract_fixture_names(fn: Optional[Callable]) -> List[str]:
    """
    Names of the fixtures a step handler asks for.

    Step arguments captured from the text are positional, fixtures are
    keyword-only::

        @given("I open {url}")
        def open_url(url, *, page, base_url): ...

    needs ``page`` and ``base_url``.
    """
    if fn is None:
        return []
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return []
    return [
        param.name
        for param in signature.parameters.values()
        if param.kind is inspect.Parameter.KEYWORD_ONLY
    ]

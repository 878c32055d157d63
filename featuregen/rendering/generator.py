from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, List, Optional

from ..config import AppConfig
from ..exceptions import FeatureGenError
from ..gen.feature_file import compile_document
from ..models import CompileResult
from ..parsing.discovery import document_uri, load_document
from ..steps.bindings import StepRegistry


logger = logging.getLogger(__name__)


def output_path_for(uri: str, out_dir: Path) -> Path:
    """``auth/login.feature`` -> ``<out_dir>/auth/test_login.py``."""
    source = Path(uri)
    stem = re.sub(r"\W+", "_", source.stem).strip("_") or "feature"
    return out_dir / source.parent / f"test_{stem}.py"


def generate_file(
    path: Path,
    registry: StepRegistry,
    config: AppConfig,
    root: Path,
    out_dir: Path,
    write: bool = True,
) -> CompileResult:
    """
    Compile one feature file.

    Hard errors end up in ``CompileResult.error`` so that one broken document
    does not stop the others.
    """
    uri = document_uri(path, root)
    try:
        loaded = load_document(path, root)
        uri = loaded.document.uri or uri
        feature_file = compile_document(
            loaded.document,
            loaded.pickles,
            registry,
            config,
            output_path=output_path_for(uri, out_dir),
        )
        if write:
            feature_file.save()
        return feature_file.result()
    except FeatureGenError as exc:
        logger.debug("Compilation of %s failed: %s", uri, exc)
        return CompileResult(uri=uri, error=str(exc))


def generate_files(
    paths: List[Path],
    registry: StepRegistry,
    config: AppConfig,
    root: Path,
    out_dir: Path,
    write: bool = True,
    progress_callback: Optional[Callable[[int, int, Path], None]] = None,
    result_callback: Optional[Callable[[int, int, CompileResult], None]] = None,
) -> List[CompileResult]:
    """Compile documents in parallel. Results keep the order of ``paths``."""
    total = len(paths)
    results: List[Optional[CompileResult]] = [None] * total
    completed = 0

    with ThreadPoolExecutor(max_workers=max(1, config.concurrency)) as executor:
        future_to_index = {
            executor.submit(generate_file, path, registry, config, root, out_dir, write): idx
            for idx, path in enumerate(paths)
        }
        for future in as_completed(future_to_index):
            idx = future_to_index[future]
            try:
                result = future.result()
            except Exception as exc:
                logger.exception("Unexpected error while compiling %s", paths[idx])
                result = CompileResult(uri=document_uri(paths[idx], root), error=f"{type(exc).__name__}: {exc}")
            results[idx] = result
            completed += 1
            if result_callback:
                result_callback(completed, total, result)
            if progress_callback:
                progress_callback(completed, total, paths[idx])

    return [result for result in results if result is not None]

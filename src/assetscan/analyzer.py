from __future__ import annotations

import asyncio
import fnmatch
import logging
import os
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from assetscan.config import load_project_config
from assetscan.errors import ParseError
from assetscan.extract import LiteralExtractor, default_extractors, extractor_for
from assetscan.models import ImageCandidate, LiteralCorpus, ProjectConfig, ScanResult

logger = logging.getLogger(__name__)

CODE_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx"}
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".svg", ".ico"}
DEFAULT_EXCLUDES = ["node_modules/**", "dist/**"]
STATIC_DIR = "public"
DEFAULT_BATCH_SIZE = 50
SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


@dataclass
class CorpusBuild:
    corpus: LiteralCorpus
    failures: list[str] = field(default_factory=list)


async def scan(
    root: Path,
    target: str | None = None,
    *,
    exclude: Sequence[str] = (),
    static_dir: str = STATIC_DIR,
    batch_size: int = DEFAULT_BATCH_SIZE,
    extractors: Mapping[str, LiteralExtractor] | None = None,
    on_status: Callable[[str], None] | None = None,
) -> ScanResult:
    """Report the images under the static directory that no source references.

    Phases run strictly in order: config, file discovery, corpus building,
    matching, size aggregation. Matching only starts once the corpus is
    complete.
    """
    root = root.resolve()
    status = on_status or (lambda message: None)

    status("Reading path alias configuration...")
    config = load_project_config(root)

    status("Looking for image files...")
    image_files = collect_image_files(root, target, static_dir=static_dir, exclude=exclude)
    status("Looking for code files...")
    code_files = collect_code_files(root, target, exclude=exclude)

    def report_progress(index: int, total: int, rel_path: str) -> None:
        status(f"[{index + 1}/{total}] Parsing {rel_path}")

    build = await build_corpus(
        code_files,
        root,
        extractors,
        progress=report_progress,
        batch_size=batch_size,
    )

    status("Matching images against string literals...")
    candidates = [ImageCandidate.from_path(root, path) for path in image_files]
    unused = await filter_unused(
        candidates,
        lambda candidate: not is_used(
            candidate_forms(candidate, root, config, static_dir), build.corpus
        ),
        batch_size=batch_size,
    )

    status("Calculating size of unused images...")
    total_bytes = await total_size(
        [candidate.absolute_path for candidate in unused], batch_size=batch_size
    )

    return ScanResult(
        root=str(root),
        image_count=len(image_files),
        code_count=len(code_files),
        literal_count=len(build.corpus),
        unused=[candidate.relative_path for candidate in unused],
        total_bytes=total_bytes,
        parse_failures=build.failures,
    )


def collect_code_files(
    root: Path, scope: str | None = None, exclude: Sequence[str] = ()
) -> list[Path]:
    return _collect_files(root, scope, CODE_EXTENSIONS, DEFAULT_EXCLUDES + list(exclude))


def collect_image_files(
    root: Path,
    scope: str | None = None,
    static_dir: str = STATIC_DIR,
    exclude: Sequence[str] = (),
) -> list[Path]:
    return _collect_files(root, scope or static_dir, IMAGE_EXTENSIONS, list(exclude))


def _collect_files(
    root: Path,
    scope: str | None,
    extensions: set[str],
    exclude_patterns: list[str],
) -> list[Path]:
    start = root / scope if scope else root
    results: list[Path] = []
    if not start.is_dir():
        return results
    for dirpath, dirnames, filenames in os.walk(start):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        if rel_dir != "." and _matches(rel_dir + "/", exclude_patterns):
            dirnames[:] = []
            continue
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in filenames:
            if name.startswith("."):
                continue
            full_path = Path(dirpath) / name
            if full_path.suffix.lower() not in extensions:
                continue
            rel_path = full_path.relative_to(root).as_posix()
            if _matches(rel_path, exclude_patterns):
                continue
            results.append(full_path)
    results.sort(key=lambda p: p.relative_to(root).as_posix())
    return results


def _matches(path: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch.fnmatch(path, pattern) for pattern in patterns)


async def build_corpus(
    code_files: Sequence[Path],
    root: Path,
    extractors: Mapping[str, LiteralExtractor] | None = None,
    *,
    progress: Callable[[int, int, str], None] | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> CorpusBuild:
    """Union the string literals of every code file into one corpus.

    A file that cannot be read or parsed is logged and contributes nothing.
    """
    if extractors is None:
        extractors = default_extractors()
    literals: set[str] = set()
    failures: list[str] = []
    total = len(code_files)

    for index, path in enumerate(code_files):
        rel_path = _relative(root, path)
        if progress is not None:
            progress(index, total, rel_path)
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
            extractor = extractor_for(path, extractors)
            literals.update(extractor.extract(content, rel_path))
        except (OSError, ParseError) as exc:
            logger.error("Failed to parse %s: %s", rel_path, exc)
            failures.append(rel_path)
        if (index + 1) % batch_size == 0:
            await asyncio.sleep(0)

    logger.debug("Collected %d unique literals from %d files", len(literals), total)
    return CorpusBuild(corpus=LiteralCorpus(literals), failures=failures)


def candidate_forms(
    candidate: ImageCandidate,
    root: Path,
    config: ProjectConfig | None,
    static_dir: str = STATIC_DIR,
) -> tuple[str, str, str]:
    relative_image_path = re.sub(
        rf"^{re.escape(static_dir)}[\\/]", "", candidate.relative_path
    )
    matched = config.alias_matcher(relative_image_path) if config is not None else None
    if matched:
        resolved = os.path.relpath(
            os.path.normpath(os.path.join(config.base_dir, matched)), root
        )
        resolved_path = resolved.replace("\\", "/")
    else:
        resolved_path = relative_image_path.replace("\\", "/")
    return resolved_path, f"/{resolved_path}", candidate.basename


def is_used(forms: Iterable[str], corpus: LiteralCorpus) -> bool:
    return any(form in corpus or corpus.contains_substring(form) for form in forms)


async def filter_unused(
    candidates: Sequence[ImageCandidate],
    predicate: Callable[[ImageCandidate], bool],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> list[ImageCandidate]:
    results: list[ImageCandidate] = []
    for start in range(0, len(candidates), batch_size):
        for candidate in candidates[start : start + batch_size]:
            if predicate(candidate):
                results.append(candidate)
        await asyncio.sleep(0)
    return results


async def total_size(paths: Sequence[Path], batch_size: int = DEFAULT_BATCH_SIZE) -> int:
    total = 0
    for start in range(0, len(paths), batch_size):
        batch = paths[start : start + batch_size]
        sizes = await asyncio.gather(*(_file_size(path) for path in batch))
        total += sum(sizes)
        await asyncio.sleep(0)
    return total


async def _file_size(path: Path) -> int:
    try:
        stat = await asyncio.to_thread(os.stat, path)
    except OSError as exc:
        logger.warning("Cannot read size of %s: %s", path, exc)
        return 0
    return stat.st_size


def format_size(size: int) -> str:
    if size <= 0:
        return "0 B"
    index = 0
    while index < len(SIZE_UNITS) - 1 and size >= 1024 ** (index + 1):
        index += 1
    return f"{size / 1024 ** index:.2f} {SIZE_UNITS[index]}"


def _relative(root: Path, path: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()

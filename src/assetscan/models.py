from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

# Never appears in a path form, so a needle cannot match across two literals.
_SEPARATOR = "\x00"


@dataclass(frozen=True)
class ProjectConfig:
    config_path: Path
    base_dir: Path
    alias_matcher: Callable[[str], str | None]


@dataclass(frozen=True)
class ImageCandidate:
    absolute_path: Path
    relative_path: str
    basename: str

    @classmethod
    def from_path(cls, root: Path, path: Path) -> ImageCandidate:
        return cls(
            absolute_path=path,
            relative_path=path.relative_to(root).as_posix(),
            basename=path.name,
        )


@dataclass(frozen=True)
class ScanResult:
    root: str
    image_count: int
    code_count: int
    literal_count: int
    unused: list[str]
    total_bytes: int
    parse_failures: list[str] = field(default_factory=list)


class LiteralCorpus:
    """Read-only set of every string literal seen across the scanned sources.

    Exact lookups go through the underlying frozenset. Substring lookups scan
    a single joined haystack, built lazily on first use.
    """

    def __init__(self, literals: Iterable[str] = ()) -> None:
        self._literals = frozenset(literals)
        self._haystack: str | None = None

    def __contains__(self, item: object) -> bool:
        return item in self._literals

    def __len__(self) -> int:
        return len(self._literals)

    def __iter__(self) -> Iterator[str]:
        return iter(self._literals)

    def __repr__(self) -> str:
        return f"LiteralCorpus({len(self._literals)} literals)"

    def contains_substring(self, needle: str) -> bool:
        if not needle:
            return bool(self._literals)
        if self._haystack is None:
            self._haystack = _SEPARATOR.join(sorted(self._literals))
        return needle in self._haystack

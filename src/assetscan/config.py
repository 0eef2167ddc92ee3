from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path

import json5

from assetscan.errors import ConfigError
from assetscan.models import ProjectConfig

logger = logging.getLogger(__name__)

CONFIG_FILES = ("tsconfig.json", "jsconfig.json")
# Extensions tsconfig-paths probes when the mapped file itself is missing.
MATCH_EXTENSIONS = (".js", ".json", ".node")


def find_config(root: Path) -> Path | None:
    for name in CONFIG_FILES:
        path = root / name
        if path.is_file():
            return path
    return None


def load_project_config(root: Path) -> ProjectConfig | None:
    """Read tsconfig.json (or jsconfig.json) at ``root``.

    Returns None when neither file exists. Raises ConfigError when the file
    is present but unparseable or has no ``compilerOptions`` section.
    """
    root = root.resolve()
    config_path = find_config(root)
    if config_path is None:
        logger.info("No tsconfig.json or jsconfig.json found; skipping alias resolution.")
        return None

    try:
        raw = json5.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        raise ConfigError(f"Cannot parse {config_path.name}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{config_path.name} must contain a JSON object")
    options = raw.get("compilerOptions")
    if not isinstance(options, dict):
        raise ConfigError(f"No compilerOptions found in {config_path.name}")

    base_dir = (root / (options.get("baseUrl") or "./")).resolve()
    paths = options.get("paths") or {}
    if not isinstance(paths, dict):
        raise ConfigError(f"compilerOptions.paths in {config_path.name} must be an object")

    logger.info("Parsed %s; resolving path aliases.", config_path.name)
    return ProjectConfig(
        config_path=config_path,
        base_dir=base_dir,
        alias_matcher=AliasMatcher(base_dir, paths, extensions=MATCH_EXTENSIONS),
    )


class AliasMatcher:
    """Map a module request onto a file using tsconfig ``paths`` rules.

    Mappings are tried longest literal prefix first. A ``"*"`` catch-all that
    resolves against the base directory is added unless one is configured.
    The first candidate that exists on disk wins.
    """

    def __init__(
        self,
        base_dir: Path,
        paths: Mapping[str, Sequence[str]],
        *,
        add_match_all: bool = True,
        file_exists: Callable[[str], bool] = os.path.isfile,
        extensions: Iterable[str] = (),
    ) -> None:
        mappings: dict[str, list[str]] = {}
        for pattern, targets in paths.items():
            if isinstance(targets, str):
                targets = [targets]
            mappings[pattern] = [os.path.join(base_dir, target) for target in targets]
        if add_match_all and "*" not in mappings:
            mappings["*"] = [os.path.join(base_dir, "*")]
        self.base_dir = base_dir
        self.mappings = sorted(
            mappings.items(), key=lambda item: _prefix_length(item[0]), reverse=True
        )
        self._file_exists = file_exists
        self._extensions = tuple(extensions)

    def __call__(self, request: str) -> str | None:
        if _is_relative_or_absolute(request):
            return None
        for pattern, targets in self.mappings:
            captured = "" if pattern == request else _match_star(pattern, request)
            if captured is None:
                continue
            for target in targets:
                physical = os.path.normpath(target.replace("*", captured, 1))
                if self._file_exists(physical):
                    return physical
                for ext in self._extensions:
                    if self._file_exists(physical + ext):
                        return physical
        return None


def _prefix_length(pattern: str) -> int:
    star = pattern.find("*")
    return len(pattern) if star == -1 else star


def _match_star(pattern: str, request: str) -> str | None:
    if len(pattern) > len(request):
        return None
    if pattern == "*":
        return request
    star = pattern.find("*")
    if star == -1:
        return None
    prefix, suffix = pattern[:star], pattern[star + 1 :]
    if not request.startswith(prefix) or not request.endswith(suffix):
        return None
    return request[len(prefix) : len(request) - len(suffix)]


def _is_relative_or_absolute(request: str) -> bool:
    return request.startswith(("./", "../")) or os.path.isabs(request)

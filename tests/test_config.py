from __future__ import annotations

from pathlib import Path

import pytest

from assetscan.config import AliasMatcher, load_project_config
from assetscan.errors import ConfigError


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def test_missing_config_returns_none(tmp_path: Path) -> None:
    assert load_project_config(tmp_path) is None


def test_tsconfig_takes_priority_over_jsconfig(tmp_path: Path) -> None:
    _write(tmp_path / "tsconfig.json", '{"compilerOptions": {"baseUrl": "src"}}')
    _write(tmp_path / "jsconfig.json", '{"compilerOptions": {}}')

    config = load_project_config(tmp_path)

    assert config is not None
    assert config.config_path.name == "tsconfig.json"
    assert config.base_dir == (tmp_path / "src").resolve()


def test_jsconfig_with_comments_and_trailing_commas(tmp_path: Path) -> None:
    _write(
        tmp_path / "jsconfig.json",
        """
        {
          // editor hints
          "compilerOptions": {
            /* no baseUrl */
            "paths": {"@assets/*": ["public/*"],},
          },
        }
        """,
    )
    _write(tmp_path / "public" / "icon.svg", "<svg/>")

    config = load_project_config(tmp_path)

    assert config is not None
    assert config.base_dir == tmp_path.resolve()
    assert config.alias_matcher("@assets/icon.svg") == str(
        (tmp_path / "public" / "icon.svg").resolve()
    )


def test_missing_compiler_options_is_an_error(tmp_path: Path) -> None:
    _write(tmp_path / "tsconfig.json", '{"include": ["src"]}')

    with pytest.raises(ConfigError, match="compilerOptions"):
        load_project_config(tmp_path)


def test_malformed_config_is_an_error(tmp_path: Path) -> None:
    _write(tmp_path / "tsconfig.json", '{"compilerOptions": ')

    with pytest.raises(ConfigError):
        load_project_config(tmp_path)


def test_alias_matcher_requires_existing_file(tmp_path: Path) -> None:
    _write(tmp_path / "public" / "logo.png", "png")
    matcher = AliasMatcher(tmp_path, {"@assets/*": ["public/*"]})

    assert matcher("@assets/logo.png") == str(tmp_path / "public" / "logo.png")
    assert matcher("@assets/missing.png") is None
    assert matcher("./public/logo.png") is None


def test_alias_matcher_adds_match_all(tmp_path: Path) -> None:
    _write(tmp_path / "public" / "logo.png", "png")
    matcher = AliasMatcher(tmp_path, {})

    assert matcher("public/logo.png") == str(tmp_path / "public" / "logo.png")
    assert AliasMatcher(tmp_path, {}, add_match_all=False)("public/logo.png") is None


def test_alias_matcher_prefers_longest_prefix(tmp_path: Path) -> None:
    matcher = AliasMatcher(
        tmp_path,
        {"@/*": ["src/*"], "@/assets/*": ["public/*"]},
        file_exists=lambda path: True,
    )

    assert matcher("@/assets/a.png") == str(tmp_path / "public" / "a.png")
    assert matcher("@/utils") == str(tmp_path / "src" / "utils")


def test_alias_matcher_tries_extensions(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "theme.ts", "export {}")
    matcher = AliasMatcher(tmp_path, {"@/*": ["src/*"]}, extensions=[".ts"])

    assert matcher("@/theme") == str(tmp_path / "src" / "theme")


def test_loaded_matcher_probes_default_extensions(tmp_path: Path) -> None:
    _write(
        tmp_path / "tsconfig.json",
        '{"compilerOptions": {"baseUrl": ".", "paths": {"@/*": ["src/*"]}}}',
    )
    _write(tmp_path / "src" / "theme.js", "export default {}")

    config = load_project_config(tmp_path)

    assert config is not None
    assert config.alias_matcher("@/theme") == str((tmp_path / "src" / "theme").resolve())
    assert config.alias_matcher("@/missing") is None

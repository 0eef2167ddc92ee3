from __future__ import annotations

import json
from pathlib import Path

import pytest

from assetscan import cli


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def test_help_exits_zero() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--help"])
    assert excinfo.value.code == 0


def test_rejects_missing_path(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="does not exist"):
        cli.main(["--path", str(tmp_path / "nope")])


def test_report_lists_unused_images(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write(tmp_path / "public" / "used.png", "u")
    _write(tmp_path / "public" / "stale.png", "12345")
    _write(tmp_path / "src" / "app.js", 'const src = "/used.png";\n')

    result = cli.main(["--path", str(tmp_path)])

    assert result == 0
    out = capsys.readouterr().out
    assert "Found 2 image files" in out
    assert "Found 1 code files" in out
    assert "Unused image files:" in out
    assert "public/stale.png" in out
    assert "public/used.png" not in out
    assert "Total size of unused images: 5.00 B" in out


def test_json_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write(tmp_path / "public" / "stale.png", "x" * 2048)
    _write(tmp_path / "src" / "app.ts", "export const n: number = 1;\n")

    assert cli.main(["--path", str(tmp_path), "--json"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["unused"] == ["public/stale.png"]
    assert payload["total_bytes"] == 2048
    assert payload["total_size"] == "2.00 KB"
    assert payload["code_count"] == 1


def test_config_without_compiler_options_exits_nonzero(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(tmp_path / "tsconfig.json", '{"files": []}')
    _write(tmp_path / "public" / "a.png", "a")

    assert cli.main(["--path", str(tmp_path)]) == 1
    assert "Scan failed" in capsys.readouterr().err


def test_target_folder_argument(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write(tmp_path / "app" / "img" / "hero.jpg", "h")
    _write(tmp_path / "app" / "img" / "old.jpg", "o")
    _write(tmp_path / "app" / "page.jsx", "export default () => <img src={`img/hero.jpg`} />;\n")

    assert cli.main(["app", "--path", str(tmp_path), "--json"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["unused"] == ["app/img/old.jpg"]

"""Tests for the tabscore command line."""

import json
from pathlib import Path
from typing import Any

from click.testing import CliRunner

from tabscore import __version__
from tabscore.cli import main


def _write_song(tmp_path: Path, directives: list[dict[str, Any]] | None = None) -> Path:
    path = tmp_path / "my_song.json"
    if directives is None:
        directives = [
            {"element": "options", "params": [{"key": "tempo", "value": "100"}]},
            {
                "element": "tabstave",
                "options": [{"key": "notation", "value": "true"}],
                "notes": [
                    {"fret": "5", "string": "3"},
                    {"fret": "7", "string": "3", "articulation": "h"},
                    {"command": "bar", "type": "end"},
                ],
                "text": ["Am", "C"],
                "_l": 2,
                "_c": 1,
            },
        ]
    path.write_text(json.dumps(directives), encoding="utf-8")
    return path


def test_version() -> None:
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_render_markdown_defaults_to_input_stem(tmp_path: Path) -> None:
    song = _write_song(tmp_path)
    result = CliRunner().invoke(main, ["render", str(song)])

    assert result.exit_code == 0, result.output
    output = tmp_path / "my_song.md"
    assert output.exists()
    assert output.read_text(encoding="utf-8").startswith("# my song")


def test_render_json_to_explicit_path(tmp_path: Path) -> None:
    song = _write_song(tmp_path)
    output = tmp_path / "layout.json"
    result = CliRunner().invoke(main, ["render", str(song), "--format", "json", "-o", str(output)])

    assert result.exit_code == 0, result.output
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert len(payload["staves"]) == 1
    assert payload["tab_links"][0]["label"] == "H"


def test_render_reports_compile_errors(tmp_path: Path) -> None:
    song = _write_song(tmp_path, [{"element": "tabstave", "notes": [{"command": "slur"}], "_l": 4, "_c": 1}])
    result = CliRunner().invoke(main, ["render", str(song)])

    assert result.exit_code == 1
    assert "ERROR: Invalid command 'slur' in line 4 column 1" in result.output


def test_render_reports_invalid_json(tmp_path: Path) -> None:
    song = tmp_path / "broken.json"
    song.write_text("[{", encoding="utf-8")
    result = CliRunner().invoke(main, ["render", str(song)])

    assert result.exit_code == 1
    assert "Invalid directive JSON" in result.output


def test_midi_writes_file(tmp_path: Path) -> None:
    song = _write_song(tmp_path)
    result = CliRunner().invoke(main, ["midi", str(song)])

    assert result.exit_code == 0, result.output
    assert "at 100 BPM" in result.output
    assert (tmp_path / "my_song.mid").read_bytes().startswith(b"MThd")


def test_midi_tempo_override(tmp_path: Path) -> None:
    song = _write_song(tmp_path)
    output = tmp_path / "fast.mid"
    result = CliRunner().invoke(main, ["midi", str(song), "--tempo", "180", "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert "at 180 BPM" in result.output
    assert output.exists()


def test_verbose_flag_is_accepted(tmp_path: Path) -> None:
    song = _write_song(tmp_path)
    result = CliRunner().invoke(main, ["--verbose", "render", str(song), "--format", "json"])
    assert result.exit_code == 0, result.output

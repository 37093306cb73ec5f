"""Tests for the treechord command line interface."""

import json
from pathlib import Path

from click.testing import CliRunner

from treechord import __version__
from treechord.cli import main


def _tree_file(tmp_path: Path, tree: dict) -> str:
    path = tmp_path / "my_bar.json"
    path.write_text(json.dumps(tree), encoding="utf-8")
    return str(path)


def _triplet_tree() -> dict:
    return {"id": "t", "children": [{"id": f"c{i}"} for i in range(3)]}


def test_version() -> None:
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_render_json_to_default_path(tmp_path: Path) -> None:
    tree_path = _tree_file(tmp_path, _triplet_tree())
    result = CliRunner().invoke(main, ["render", tree_path, "--meter", "2/8", "--format", "json"])

    assert result.exit_code == 0, result.output
    out = tmp_path / "my_bar-score.json"
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["title"] == "my bar"
    assert len(payload["tuplets"]) == 1


def test_render_markdown_with_options(tmp_path: Path) -> None:
    tree_path = _tree_file(tmp_path, _triplet_tree())
    out = tmp_path / "score.md"
    result = CliRunner().invoke(
        main,
        ["render", tree_path, "-m", "2/8", "-o", str(out), "--title", "Trip", "--note-name", "c/5"],
    )

    assert result.exit_code == 0, result.output
    content = out.read_text(encoding="utf-8")
    assert content.startswith("# Trip")
    assert '"keys":["c/5"]' in content


def test_render_reports_domain_error(tmp_path: Path) -> None:
    tree_path = _tree_file(tmp_path, {"id": "r", "children": [{"id": "bad", "size": 0}]})
    result = CliRunner().invoke(main, ["render", tree_path, "--meter", "4/4", "--format", "json"])

    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_invalid_meter_is_usage_error(tmp_path: Path) -> None:
    tree_path = _tree_file(tmp_path, _triplet_tree())
    result = CliRunner().invoke(main, ["inspect", tree_path, "--meter", "four"])
    assert result.exit_code == 2


def test_inspect_outlines_tuplet(tmp_path: Path) -> None:
    tree_path = _tree_file(tmp_path, _triplet_tree())
    result = CliRunner().invoke(main, ["inspect", tree_path, "--meter", "2/8"])

    assert result.exit_code == 0, result.output
    assert "Meter: 2/8" in result.output
    assert "tuplet 3:2 of 1/8  (t)" in result.output
    assert "  note 1/8  (c0)" in result.output


def test_inspect_honours_max_tied(tmp_path: Path) -> None:
    tree = {"id": "r", "children": [{"id": "long", "size": 3}, {"id": "short"}]}
    tree_path = _tree_file(tmp_path, tree)

    plain = CliRunner().invoke(main, ["inspect", tree_path, "--meter", "2/4"])
    capped = CliRunner().invoke(main, ["inspect", tree_path, "--meter", "2/4", "--max-tied", "2"])

    assert "note 1/8  (long)  [tied]" in plain.output
    assert "tuplet 4:2 of 1/4  (r)" in capped.output


def test_inspect_reports_run_no_tuplet_can_shorten(tmp_path: Path) -> None:
    tree = {"id": "r", "children": [{"id": "five", "size": 5}, {"id": "three", "size": 3}]}
    result = CliRunner().invoke(main, ["inspect", _tree_file(tmp_path, tree), "--meter", "8/8"])

    assert result.exit_code == 1
    assert "ERROR" in result.output
    assert "five" in result.output


def test_inspect_reports_null_children(tmp_path: Path) -> None:
    tree_path = _tree_file(tmp_path, {"id": "a", "children": None})
    result = CliRunner().invoke(main, ["inspect", tree_path, "--meter", "4/4"])

    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_inspect_reports_non_utf8_file(tmp_path: Path) -> None:
    tree_path = tmp_path / "latin1.json"
    tree_path.write_bytes(b'{"id": "\xff"}')
    result = CliRunner().invoke(main, ["inspect", str(tree_path), "--meter", "4/4"])

    assert result.exit_code == 1
    assert "ERROR" in result.output


def test_render_reports_non_object_child(tmp_path: Path) -> None:
    tree_path = _tree_file(tmp_path, {"id": "r", "children": ["id"]})
    result = CliRunner().invoke(main, ["render", tree_path, "--meter", "4/4", "--format", "json"])

    assert result.exit_code == 1
    assert "ERROR" in result.output

"""Tests for the command line entry point."""

import json

import pytest

from pomshift.config import get_settings
from pomshift.main import build_parser, main


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    monkeypatch.delenv("POMSHIFT_PATTERN_RECOGNITION_ENABLED", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestArguments:

    def test_convert_options(self):
        args = build_parser().parse_args(["convert", "src", "out", "--diagnostics", "--json"])
        assert args.command == "convert"
        assert args.input == "src"
        assert args.output == "out"
        assert args.diagnostics
        assert args.json
        assert not args.no_project_context

    def test_missing_command(self, capsys):
        assert main([]) == 1

    def test_missing_input(self, capsys):
        assert main(["convert"]) == 1
        assert "missing input path" in capsys.readouterr().err

    def test_nonexistent_input(self, tmp_path, capsys):
        assert main(["convert", str(tmp_path / "nope")]) == 1
        assert "does not exist" in capsys.readouterr().err

    def test_unknown_option_exits_with_one(self, capsys):
        assert main(["convert", "--bogus"]) == 1


class TestConvert:

    def test_directory_conversion(self, java_project, tmp_path, capsys):
        out = tmp_path / "out"
        assert main(["convert", str(java_project), str(out)]) == 0
        assert (out / "pages" / "LoginPage.ts").exists()
        assert "Converted 5 of 5 file(s)" in capsys.readouterr().out

    def test_json_summary(self, java_project, tmp_path, capsys):
        out = tmp_path / "out"
        assert main(["convert", str(java_project), str(out), "--json"]) == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["converted"] == 5
        assert summary["output_path"] == str(out)

    def test_diagnostics_flag(self, java_project, tmp_path):
        out = tmp_path / "out"
        page = java_project / "pages" / "LoginPage.java"
        assert main(["convert", str(page), str(out), "--diagnostics"]) == 0
        assert (out / "LoginPage.skipped.txt").exists()
        assert (out / "LoginPage.source.txt").exists()

    def test_default_output_location(self, java_project):
        assert main(["convert", str(java_project)]) == 0
        assert (java_project.parent / "src_playwright" / "steps" / "LoginSteps.ts").exists()

"""Tests for the CLI module: arg parsing, exit codes, end-to-end."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import pytest

from liqpy.cli import CliOptions, build_parser, main, parse_var_arg, render_file
from liqpy.flavor import Flavor
from liqpy.protection import ProtectionSettings

# ---------------------------------------------------------------------------
# Argument parsing helpers
# ---------------------------------------------------------------------------


class TestParseHelpers:
    def test_parse_var_arg_simple(self) -> None:
        assert parse_var_arg("name=World") == ("name", "World")

    def test_parse_var_arg_with_equals_in_value(self) -> None:
        assert parse_var_arg("x=a=b") == ("x", "a=b")

    def test_parse_var_arg_empty_value(self) -> None:
        assert parse_var_arg("key=") == ("key", "")

    def test_parse_var_arg_no_equals_raises(self) -> None:
        with pytest.raises(argparse.ArgumentTypeError):
            parse_var_arg("noequals")


class TestArgParsing:
    def test_input_only(self) -> None:
        ns = build_parser().parse_args(["page.liquid"])
        assert ns.input == "page.liquid"
        assert ns.output is None
        assert ns.flavor is None
        assert ns.var == []

    def test_var_flags(self) -> None:
        ns = build_parser().parse_args(["page.liquid", "-v", "a=1", "--var", "b=2"])
        assert ns.var == ["a=1", "b=2"]

    def test_limits(self) -> None:
        ns = build_parser().parse_args(["page.liquid", "--max-size", "100", "--max-time", "0.5"])
        assert ns.max_size == 100
        assert ns.max_time == 0.5

    def test_bad_flavor_exits(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["page.liquid", "--flavor", "django"])


# ---------------------------------------------------------------------------
# render_file
# ---------------------------------------------------------------------------


class TestRenderFile:
    def test_renders_with_variables(self, tmp_path: Path) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("Hello {{ name }}!")
        options = CliOptions(
            input_file=page,
            output_file=None,
            variables={"name": "World"},
            flavor=Flavor.LIQUID,
            protection=ProtectionSettings(),
            debug=False,
        )
        assert render_file(options) == "Hello World!"


# ---------------------------------------------------------------------------
# main() end to end
# ---------------------------------------------------------------------------


class TestMain:
    def test_stdout(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("Hello {{ name }}!")
        assert main([str(page), "-v", "name=World"]) == 0
        assert capsys.readouterr().out == "Hello World!"

    def test_output_file(self, tmp_path: Path) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("{{ 'x' | upcase }}")
        out = tmp_path / "out.txt"
        assert main([str(page), "-o", str(out)]) == 0
        assert out.read_text() == "X"

    def test_vars_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("{% for i in items %}{{ i }}{% endfor %}")
        data = tmp_path / "vars.json"
        data.write_text(json.dumps({"items": [1, 2, 3]}))
        assert main([str(page), "--vars", str(data)]) == 0
        assert capsys.readouterr().out == "123"

    def test_var_flag_overrides_vars_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("{{ a }}")
        data = tmp_path / "vars.json"
        data.write_text('{"a": "file"}')
        assert main([str(page), "--vars", str(data), "-v", "a=flag"]) == 0
        assert capsys.readouterr().out == "flag"

    def test_malformed_vars_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("x")
        data = tmp_path / "vars.json"
        data.write_text("[1, 2]")
        assert main([str(page), "--vars", str(data)]) == 2
        assert "must be an object" in capsys.readouterr().err

    def test_parse_error_exit_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("{% if x %}")
        assert main([str(page)]) == 1
        err = capsys.readouterr().err
        assert err.startswith("error:")
        assert f"--> {page}:1:" in err

    def test_unknown_tag_exit_2(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("{% frobnicate %}")
        assert main([str(page)]) == 2
        assert "unknown tag 'frobnicate'" in capsys.readouterr().err

    def test_missing_input_exit_2(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(tmp_path / "nope.liquid")]) == 2
        assert capsys.readouterr().err.startswith("error:")

    def test_max_size(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("0123456789")
        assert main([str(page), "--max-size", "5"]) == 2
        assert "exceeds 5 bytes" in capsys.readouterr().err

    def test_negative_limit_exit_2(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("x")
        assert main([str(page), "--max-size", "-1"]) == 2
        assert "must not be negative" in capsys.readouterr().err

    def test_jekyll_flavor(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (tmp_path / "_includes").mkdir()
        (tmp_path / "_includes" / "a.html").write_text("[{{ include.v }}]")
        page = tmp_path / "page.html"
        page.write_text("{% include a.html v='1' %}")
        assert main([str(page), "--flavor", "jekyll"]) == 0
        assert capsys.readouterr().out == "[1]"

    def test_debug_dumps_ast(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        page = tmp_path / "page.liquid"
        page.write_text("hi")
        assert main([str(page), "--debug"]) == 0
        captured = capsys.readouterr()
        assert captured.out == "hi"
        assert "'- DOCUMENT" in captured.err

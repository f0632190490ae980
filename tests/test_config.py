"""Tests for TOML config file loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from liqpy.cli import build_parser, load_config, resolve_options
from liqpy.flavor import Flavor
from liqpy.protection import ProtectionSettings


def _options(tmp_path: Path, *extra: str):
    doc = tmp_path / "page.liquid"
    doc.write_text("")
    ns = build_parser().parse_args([str(doc), *extra])
    return resolve_options(ns)


class TestLoadConfig:
    def test_missing_config_returns_empty(self, tmp_path: Path) -> None:
        assert load_config(None, tmp_path) == {}

    def test_explicit_path(self, tmp_path: Path) -> None:
        cfg = tmp_path / "custom.toml"
        cfg.write_text('[vars]\nmode = "test"\n')
        assert load_config(cfg, tmp_path)["vars"] == {"mode": "test"}

    def test_auto_discover_liqpy_toml(self, tmp_path: Path) -> None:
        (tmp_path / "liqpy.toml").write_text('flavor = "jekyll"\n')
        assert load_config(None, tmp_path) == {"flavor": "jekyll"}


class TestConfigMerge:
    def test_defaults(self, tmp_path: Path) -> None:
        opts = _options(tmp_path)
        assert opts.variables == {}
        assert opts.flavor is Flavor.LIQUID
        assert opts.protection == ProtectionSettings()
        assert opts.output_file is None

    def test_config_vars_merged(self, tmp_path: Path) -> None:
        (tmp_path / "liqpy.toml").write_text('[vars]\nmode = "prod"\ncount = 3\n')
        assert _options(tmp_path).variables == {"mode": "prod", "count": 3}

    def test_cli_overrides_config_vars(self, tmp_path: Path) -> None:
        (tmp_path / "liqpy.toml").write_text('[vars]\nmode = "prod"\n')
        assert _options(tmp_path, "-v", "mode=dev").variables["mode"] == "dev"

    def test_config_flavor(self, tmp_path: Path) -> None:
        (tmp_path / "liqpy.toml").write_text('flavor = "jekyll"\n')
        assert _options(tmp_path).flavor is Flavor.JEKYLL

    def test_cli_overrides_config_flavor(self, tmp_path: Path) -> None:
        (tmp_path / "liqpy.toml").write_text('flavor = "jekyll"\n')
        assert _options(tmp_path, "--flavor", "liquid").flavor is Flavor.LIQUID

    def test_unknown_config_flavor(self, tmp_path: Path) -> None:
        (tmp_path / "liqpy.toml").write_text('flavor = "django"\n')
        with pytest.raises(ValueError, match="unknown flavor"):
            _options(tmp_path)

    def test_config_protection(self, tmp_path: Path) -> None:
        (tmp_path / "liqpy.toml").write_text("[protection]\nmax_iterations = 50\nmax_source_size_bytes = 1000\n")
        opts = _options(tmp_path)
        assert opts.protection.max_iterations == 50
        assert opts.protection.max_source_size_bytes == 1000

    def test_cli_overrides_config_protection(self, tmp_path: Path) -> None:
        (tmp_path / "liqpy.toml").write_text("[protection]\nmax_source_size_bytes = 1000\n")
        opts = _options(tmp_path, "--max-size", "10", "--max-time", "2")
        assert opts.protection.max_source_size_bytes == 10
        assert opts.protection.max_evaluation_duration == 2.0

    def test_explicit_config_flag(self, tmp_path: Path) -> None:
        cfg = tmp_path / "other.toml"
        cfg.write_text('[vars]\nsrc = "other"\n')
        (tmp_path / "liqpy.toml").write_text('[vars]\nsrc = "auto"\n')
        assert _options(tmp_path, "--config", str(cfg)).variables == {"src": "other"}

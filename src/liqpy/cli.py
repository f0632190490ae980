"""Command-line interface for liqpy."""

from __future__ import annotations

import argparse
import logging
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from liqpy.errors import LiquidError, ParseError
from liqpy.flavor import Flavor
from liqpy.protection import ProtectionSettings


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    input_file: Path
    output_file: Path | None
    variables: dict[str, Any]
    flavor: Flavor
    protection: ProtectionSettings
    debug: bool


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="liqpy",
        description="Render a Liquid template",
    )
    p.add_argument("input", help="Template file")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    p.add_argument(
        "-v",
        "--var",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Set a template variable (repeatable)",
    )
    p.add_argument("--vars", metavar="FILE", help="JSON file with template variables")
    p.add_argument(
        "--flavor",
        choices=[f.value for f in Flavor],
        default=None,
        help="Template dialect (default: liquid)",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: auto-discover liqpy.toml)",
    )
    p.add_argument("--max-size", type=int, default=None, metavar="BYTES", help="Maximum template size")
    p.add_argument("--max-time", type=float, default=None, metavar="SECS", help="Maximum render time")
    p.add_argument("--debug", action="store_true", help="Dump AST to stderr")
    return p


def parse_var_arg(s: str) -> tuple[str, str]:
    """Parse a NAME=VALUE string into (name, value)."""
    if "=" not in s:
        raise argparse.ArgumentTypeError(f"invalid variable format (expected NAME=VALUE): {s}")
    name, _, value = s.partition("=")
    return name, value


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else input_dir / "liqpy.toml"

    if not path.is_file():
        return {}

    with open(path, "rb") as f:
        return tomllib.load(f)


def load_vars_file(path: Path) -> dict[str, Any]:
    """Read template variables from a JSON object file."""
    from liqpy.binder import from_json

    return from_json(path.read_text(encoding="utf-8"))


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: config file < CLI flags.
    """
    input_file = Path(args.input)
    input_dir = input_file.parent
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, input_dir)

    # Variables: config < --vars file < -v flags
    variables: dict[str, Any] = {}
    cfg_vars = config.get("vars")
    if isinstance(cfg_vars, dict):
        variables.update(cfg_vars)
    if args.vars:
        variables.update(load_vars_file(Path(args.vars)))
    for raw in args.var:
        name, value = parse_var_arg(raw)
        variables[name] = value

    # Flavor: config < CLI
    flavor = Flavor.LIQUID
    cfg_flavor = config.get("flavor")
    if isinstance(cfg_flavor, str):
        flavor = Flavor.from_name(cfg_flavor)
    if args.flavor is not None:
        flavor = Flavor.from_name(args.flavor)

    # Protection: config < CLI
    limits: dict[str, Any] = {}
    cfg_protection = config.get("protection")
    if isinstance(cfg_protection, dict):
        limits.update(cfg_protection)
    if args.max_size is not None:
        limits["max_source_size_bytes"] = args.max_size
    if args.max_time is not None:
        limits["max_evaluation_duration"] = args.max_time
    protection = ProtectionSettings.from_mapping(limits)

    output_file = Path(args.output) if args.output else None

    return CliOptions(
        input_file=input_file,
        output_file=output_file,
        variables=variables,
        flavor=flavor,
        protection=protection,
        debug=args.debug,
    )


def render_file(options: CliOptions) -> str:
    """Read, parse and render a template file."""
    from liqpy.debug import dump_ast
    from liqpy.template import Template

    template = Template.parse_file(
        options.input_file,
        options.flavor,
        protection_settings=options.protection,
    )

    if options.debug:
        dump_ast(template.document, file=sys.stderr)

    return template.render(options.variables)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        options = resolve_options(args)
    except LiquidError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    except (argparse.ArgumentTypeError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    try:
        text = render_file(options)
    except ParseError as exc:
        print(exc.format(str(options.input_file)), file=sys.stderr)
        return 1
    except LiquidError as exc:
        print(exc.format(str(options.input_file)), file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if options.output_file:
        options.output_file.write_text(text, encoding="utf-8")
    else:
        sys.stdout.write(text)

    return 0


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())

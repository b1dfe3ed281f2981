"""Command-line interface for wmltree."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from wmltree.errors import SemanticError, StructuralError, WmlSyntaxError

DEFAULT_MAX_DEPTH = 64
DEFAULT_INDENT = 4

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    input_file: Path
    output_file: Path | None
    macro_paths: list[Path]
    max_depth: int
    indent: int | None
    debug: bool
    dump_macros_file: Path | None = None
    expanded_file: Path | None = None


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="wmltree",
        description="Expand and parse a WML-style .cfg file into a typed JSON tree",
    )
    p.add_argument("input", help="Input .cfg file")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    p.add_argument(
        "-m",
        "--macros",
        action="append",
        default=[],
        metavar="DIR",
        help="Directory of .cfg files to collect macro definitions from (repeatable)",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: auto-discover wmltree.toml)",
    )
    p.add_argument(
        "--max-depth",
        type=int,
        default=None,
        metavar="N",
        help=f"Macro expansion depth limit (default: {DEFAULT_MAX_DEPTH})",
    )
    p.add_argument(
        "--indent",
        type=int,
        default=None,
        metavar="N",
        help=f"JSON indentation, 0 for compact output (default: {DEFAULT_INDENT})",
    )
    p.add_argument("--debug", action="store_true", help="Dump the tag tree to stderr")
    p.add_argument(
        "--dump-macros",
        metavar="FILE",
        help="Write every macro definition as an unexpanded template tree (JSON) to FILE",
    )
    p.add_argument(
        "--expanded",
        metavar="FILE",
        help="Write the macro-expanded source text to FILE",
    )
    return p


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else input_dir / "wmltree.toml"

    if not path.is_file():
        return {}

    with open(path, "rb") as f:
        return tomllib.load(f)


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: defaults < config file < CLI flags.
    """
    input_file = Path(args.input)
    input_dir = input_file.parent
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, input_dir)

    # Macro directories: config < CLI
    macro_paths: list[Path] = []
    max_depth = DEFAULT_MAX_DEPTH
    cfg_macros = config.get("macros")
    if isinstance(cfg_macros, dict):
        cfg_paths = cfg_macros.get("paths")
        if isinstance(cfg_paths, list):
            macro_paths.extend(Path(p) for p in cfg_paths)
        cfg_depth = cfg_macros.get("max_depth")
        if isinstance(cfg_depth, int):
            max_depth = cfg_depth
    macro_paths.extend(Path(p) for p in args.macros)
    if args.max_depth is not None:
        max_depth = args.max_depth
    if max_depth < 1:
        raise argparse.ArgumentTypeError(f"max depth must be at least 1, got {max_depth}")

    # JSON indentation: config < CLI
    indent: int | None = DEFAULT_INDENT
    cfg_output = config.get("output")
    if isinstance(cfg_output, dict):
        cfg_indent = cfg_output.get("indent")
        if isinstance(cfg_indent, int):
            indent = cfg_indent
    if args.indent is not None:
        indent = args.indent
    if indent is not None and indent <= 0:
        indent = None

    output_file = Path(args.output) if args.output else None

    return CliOptions(
        input_file=input_file,
        output_file=output_file,
        macro_paths=macro_paths,
        max_depth=max_depth,
        indent=indent,
        debug=args.debug,
        dump_macros_file=Path(args.dump_macros) if args.dump_macros else None,
        expanded_file=Path(args.expanded) if args.expanded else None,
    )


def compile_file(options: CliOptions) -> str:
    """Collect macros, then expand, build, and coerce the input file to JSON."""
    from wmltree import expand_source
    from wmltree.builder import build
    from wmltree.coerce import coerce
    from wmltree.debug import dump_document
    from wmltree.files import find_config_files, read_file
    from wmltree.macros import MacroTable, preprocess_files
    from wmltree.templates import dump_macros

    table = MacroTable()
    for root in options.macro_paths:
        files = find_config_files(root)
        logger.debug("collecting macros from %d files under %s", len(files), root)
        preprocess_files((path for _, path in files), table)
    logger.debug("%d macros defined", len(table))

    source = read_file(options.input_file)
    filename = str(options.input_file)
    text = expand_source(source, filename, table, options.max_depth)

    if options.expanded_file:
        options.expanded_file.write_text(text, encoding="utf-8")
    if options.dump_macros_file:
        templates = dump_macros(table)
        options.dump_macros_file.write_text(
            json.dumps(templates, indent=options.indent) + "\n", encoding="utf-8"
        )

    doc = build(text, filename)

    if options.debug:
        dump_document(doc, file=sys.stderr)

    tree = coerce(doc)
    return json.dumps(tree.to_dict(), indent=options.indent) + "\n"


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        options = resolve_options(args)
    except (argparse.ArgumentTypeError, tomllib.TOMLDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if options.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        output = compile_file(options)
    except (StructuralError, WmlSyntaxError) as exc:
        print(exc.format(), file=sys.stderr)
        return 1
    except SemanticError as exc:
        print(exc.format(), file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if options.output_file:
        options.output_file.write_text(output, encoding="utf-8")
    else:
        sys.stdout.write(output)

    return 0

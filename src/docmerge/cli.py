#!/usr/bin/env python3
"""
docmerge CLI - Merge-tag template runner

Command-line interface for validating and merging document part markup.

Usage:
    docmerge validate body=document.xml footer-1=footer1.xml
    docmerge merge --fields fields.json --mapping mapping.json --out out/ document.xml
    docmerge context --fields fields.json --mapping mapping.json

Parts are given as PART=FILE (PART is body, header-1..3, footer-1..3) or
as a bare container file name (document.xml, header2.xml, footer1.xml).

Exit Codes:
    0   OK              - Command succeeded
    1   USAGE           - No command given
    2   MERGE_FAILED    - Merge failed (no parts, writer error, strict mode)
    10  INPUT_INVALID   - Missing/unreadable input, or template errors
    11  CONFIG_ERROR    - Configuration loading/validation failed
    20  INTERNAL_ERROR  - Unexpected internal error
"""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from . import __version__
from .config import DocMergeConfig, load_config
from .engine import ContextBuilder, MergeEngine, validate_document
from .exceptions import ConfigLoadError, ConfigValidationError, DocMergeError
from .models import LoggingSink, MergeContext, PartName, TemplateDocument

logger = logging.getLogger(__name__)


# ============================================================================
# EXIT CODES
# ============================================================================

class ExitCode:
    """Exit codes for pipeline integration."""
    OK = 0
    USAGE = 1
    MERGE_FAILED = 2
    INPUT_INVALID = 10
    CONFIG_ERROR = 11
    INTERNAL_ERROR = 20


class InputError(Exception):
    """A command-line input file or argument is unusable."""


# ============================================================================
# OUTPUT HELPERS
# ============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    END = '\033[0m'

    @classmethod
    def disable(cls):
        cls.CYAN = ''
        cls.GREEN = ''
        cls.YELLOW = ''
        cls.RED = ''
        cls.BOLD = ''
        cls.END = ''


def print_header(text: str):
    print(f"\n{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{text}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.END}")


def print_success(text: str):
    print(f"{Colors.GREEN}[OK] {text}{Colors.END}")


def print_error(text: str):
    print(f"{Colors.RED}[ERROR] {text}{Colors.END}", file=sys.stderr)


def print_warning(text: str):
    print(f"{Colors.YELLOW}[WARN] {text}{Colors.END}")


def print_kv(key: str, value: str, indent: int = 0):
    spaces = "  " * indent
    print(f"{spaces}{Colors.BOLD}{key}:{Colors.END} {value}")


# ============================================================================
# PART WRITER
# ============================================================================

@dataclass
class DirectoryPartWriter:
    """Writes each merged part to its container path under `directory`."""
    directory: Path

    def write(self, part_name: str, markup: str) -> None:
        part = PartName.parse(part_name)
        relative = part.container_path if part else f"{part_name}.xml"
        target = self.directory / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(markup, encoding="utf-8")
        logger.debug("Wrote %s to %s", part_name, target)


# ============================================================================
# INPUT LOADING
# ============================================================================

def parse_part_argument(argument: str) -> tuple[PartName, Path]:
    """Split PART=FILE, or infer the part from a container file name."""
    if "=" in argument:
        name, _, file_name = argument.partition("=")
        part = PartName.parse(name)
        path = Path(file_name)
    else:
        path = Path(argument)
        part = PartName.parse(f"word/{path.name}")
    if part is None:
        raise InputError(f"Cannot tell which part '{argument}' is (use PART=FILE)")
    return part, path


def load_document(arguments: list[str]) -> TemplateDocument:
    parts: dict[PartName, str] = {}
    for argument in arguments:
        part, path = parse_part_argument(argument)
        if not path.exists():
            raise InputError(f"Part file not found: {path}")
        parts[part] = path.read_text(encoding="utf-8")
    return TemplateDocument(parts)


def load_json(path_text: Optional[str], label: str) -> Any:
    if not path_text:
        return None
    path = Path(path_text)
    if not path.exists():
        raise InputError(f"{label} file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid JSON in {path}: {e}") from e


def build_context_from_args(args, config: DocMergeConfig) -> MergeContext:
    """Build a context from --fields / --mapping / --system files."""
    fields_data = load_json(args.fields, "Fields")
    system_values = load_json(getattr(args, "system", None), "System values")
    if isinstance(fields_data, dict):
        system_values = system_values or fields_data.get("system")
        fields_data = fields_data.get("fields", [])
    if not isinstance(fields_data, list):
        raise InputError("Fields file must hold a list of field records")

    mapping = load_json(args.mapping, "Mapping") or {}
    if not isinstance(mapping, dict):
        raise InputError("Mapping file must hold an object of merge tag -> field id")

    builder = ContextBuilder(rules=config.rules, settings=config.settings)
    return builder.build(fields_data, mapping, system_values)


def load_run_config(args) -> DocMergeConfig:
    config = load_config(args.config) if getattr(args, "config", None) else load_config()
    if getattr(args, "strict", False):
        config = dataclasses.replace(
            config, settings=dataclasses.replace(config.settings, strict=True)
        )
    return config


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_validate(args):
    """Report merge tags, conditionals, modifiers and structural errors."""
    config = load_run_config(args)
    document = load_document(args.parts)
    report = validate_document(document, config.settings)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_header("docmerge - Validate Template")
        print(report.summary())
        print()
        if report.has_errors:
            print_warning("Template has structural errors")
        else:
            print_success("Template is structurally valid")

    return ExitCode.INPUT_INVALID if report.has_errors else ExitCode.OK


def cmd_merge(args):
    """Build the context, merge every part, and write the results."""
    config = load_run_config(args)
    document = load_document(args.parts)
    context = build_context_from_args(args, config)

    engine = MergeEngine(settings=config.settings, sink=LoggingSink())
    writer = DirectoryPartWriter(Path(args.out))
    try:
        result = engine.merge(context, document, writer)
    except DocMergeError as e:
        print_error(str(e))
        return ExitCode.MERGE_FAILED

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_header("docmerge - Merge")
        print_kv("Parts", ", ".join(result.parts) or "(none)")
        print_kv("Variables substituted", str(result.report.variables_substituted))
        print_kv("Conditionals resolved", str(result.report.conditionals_resolved))
        unresolved = result.report.unresolved_identifiers
        if unresolved:
            print_warning(f"Unresolved: {', '.join(unresolved)}")

    if not result.success:
        print_error(f"Merge failed: {result.error['message']}")
        return ExitCode.MERGE_FAILED
    if not args.json:
        print_success(f"Wrote {len(result.parts)} part(s) to {args.out}")
    return ExitCode.OK


def cmd_context(args):
    """Print the merge context built from the field records."""
    config = load_run_config(args)
    context = build_context_from_args(args, config)
    print(json.dumps(context.to_dict(), indent=2))
    return ExitCode.OK


# ============================================================================
# MAIN
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docmerge",
        description="docmerge - merge-tag templates for document part markup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   OK              Command succeeded
  1   USAGE           No command given
  2   MERGE_FAILED    Merge failed
  10  INPUT_INVALID   Invalid input or template errors
  11  CONFIG_ERROR    Configuration failed to load
  20  INTERNAL_ERROR  Unexpected internal error

Examples:
  docmerge validate body=document.xml footer-1=footer1.xml
  docmerge merge --fields fields.json --mapping mapping.json --out out/ document.xml
  docmerge context --fields fields.json
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default WARNING)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # validate
    validate_parser = subparsers.add_parser(
        "validate",
        help="Report the template structure of each part"
    )
    validate_parser.add_argument("parts", nargs="+", help="PART=FILE or container file name")
    validate_parser.add_argument("--config", "-c", help="Configuration YAML file")
    validate_parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    validate_parser.set_defaults(func=cmd_validate)

    # merge
    merge_parser = subparsers.add_parser(
        "merge",
        help="Merge field values into the template parts"
    )
    merge_parser.add_argument("parts", nargs="+", help="PART=FILE or container file name")
    merge_parser.add_argument("--fields", "-f", required=True, help="Field records JSON file")
    merge_parser.add_argument("--mapping", "-m", help="Merge tag -> field id JSON file")
    merge_parser.add_argument("--system", "-s", help="System values JSON file")
    merge_parser.add_argument("--config", "-c", help="Configuration YAML file")
    merge_parser.add_argument("--out", "-o", default="./out", help="Output directory")
    merge_parser.add_argument("--strict", action="store_true",
                              help="Fail on the first template problem")
    merge_parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    merge_parser.set_defaults(func=cmd_merge)

    # context
    context_parser = subparsers.add_parser(
        "context",
        help="Print the merge context built from field records"
    )
    context_parser.add_argument("--fields", "-f", required=True, help="Field records JSON file")
    context_parser.add_argument("--mapping", "-m", help="Merge tag -> field id JSON file")
    context_parser.add_argument("--system", "-s", help="System values JSON file")
    context_parser.add_argument("--config", "-c", help="Configuration YAML file")
    context_parser.set_defaults(func=cmd_context)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    if not sys.stdout.isatty():
        Colors.disable()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return ExitCode.USAGE

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except InputError as e:
        print_error(str(e))
        return ExitCode.INPUT_INVALID
    except (ConfigLoadError, ConfigValidationError) as e:
        print_error(str(e))
        return ExitCode.CONFIG_ERROR
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        return ExitCode.INTERNAL_ERROR


if __name__ == "__main__":
    sys.exit(main())

"""Main CLI entry point for the json-layout command-line tool.

Builds layout documents and prints the resulting node tree or a
validation report.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from json_layout import __version__
from json_layout.shared.config import ConfigError, LayoutConfig
from json_layout.shared.logging import configure_logging, get_logger
from json_layout.shared.result import DiagnosticSeverity
from json_layout.tools.profiling import BuildProfiler
from json_layout.tree import Layout

MAX_ERRORS_SHOWN = 3


def parse_display(value: str) -> Tuple[int, int]:
    """Parse a ``WIDTHxHEIGHT`` display size."""
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Display must look like 144x168, got '{value}'") from e
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError("Display dimensions must be positive")
    return width, height


def build_config(args: argparse.Namespace) -> LayoutConfig:
    config = LayoutConfig.strict() if getattr(args, "strict", False) else LayoutConfig.permissive()
    display = getattr(args, "display", None)
    if display is not None:
        config = config.override(build__display_width=display[0], build__display_height=display[1])
    return config


class LayoutProcessor:
    """Builds one document per file and summarizes the outcome."""

    def __init__(
        self,
        config: LayoutConfig,
        standard_types: bool = True,
        profiler: Optional[BuildProfiler] = None,
    ) -> None:
        self.config = config
        self.standard_types = standard_types
        self.profiler = profiler
        self.logger = get_logger(__name__, None, "cli_processor")

    def process_file(self, path: Path) -> Dict[str, Any]:
        try:
            data = path.read_bytes()
        except OSError as e:
            self.logger.warning("Could not read file", extra={"file": str(path)})
            return {"file": str(path), "success": False, "error": str(e), "diagnostics": []}

        if self.profiler is not None:
            session, _ = self.profiler.profile_document(
                data, str(path), self.config, self.standard_types
            )
        else:
            session = None

        with Layout(self.config, standard_types=self.standard_types) as layout:
            if self.standard_types:
                layout.add_system_fonts()
            result = layout.parse(data)
            summary: Dict[str, Any] = {
                "file": str(path),
                "success": result.success,
                "tree": result.root.to_dict() if result.root is not None else None,
                "node_count": layout.node_count,
                "ids": layout.ids.keys(),
                "metrics": result.metrics.to_dict(),
                "diagnostics": [diag.to_dict() for diag in result.diagnostics],
            }
        if session is not None:
            summary["profile"] = session.to_dict()
        return summary


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="json-layout",
        description="Build declarative JSON layouts into node trees"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Build layouts and print their trees")
    inspect_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Layout documents to build"
    )
    inspect_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)"
    )
    inspect_parser.add_argument(
        "--display",
        type=parse_display,
        help="Display size used for the root frame, e.g. 144x168"
    )
    inspect_parser.add_argument(
        "--strict",
        action="store_true",
        help="Reject malformed values instead of coercing them"
    )
    inspect_parser.add_argument(
        "--standard-types",
        dest="standard_types",
        action="store_true",
        default=True,
        help="Register TextLayer and BitmapLayer (default)"
    )
    inspect_parser.add_argument(
        "--no-standard-types",
        dest="standard_types",
        action="store_false",
        help="Only the default container type is available"
    )
    inspect_parser.add_argument(
        "--profile",
        action="store_true",
        help="Report time and memory per build stage"
    )

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate layout documents")
    validate_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Layout documents to validate"
    )
    validate_parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat malformed values as errors"
    )
    validate_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format"
    )

    # Global options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def _error_messages(result: Dict[str, Any]) -> List[str]:
    errors = [
        d["message"] for d in result.get("diagnostics", [])
        if d.get("severity") in (DiagnosticSeverity.ERROR.name, DiagnosticSeverity.CRITICAL.name)
    ]
    if "error" in result:
        errors.insert(0, result["error"])
    return errors


def format_tree(node: Dict[str, Any], indent: int = 0) -> List[str]:
    """Render a ``Layer.to_dict`` tree as indented lines."""
    details = [f"frame={node['frame']}"]
    for key in ("background", "text", "bitmap", "font"):
        if key in node and node[key] is not None:
            details.append(f"{key}={node[key]!r}")
    lines = ["  " * indent + f"{node['kind']} " + " ".join(details)]
    for child in node.get("layers", []):
        lines.extend(format_tree(child, indent + 1))
    return lines


def format_results(results: List[Dict[str, Any]], format_type: str) -> str:
    """Format inspect results for output."""
    if format_type == "json":
        return json.dumps(results, indent=2)

    if not results:
        return "No results to display."

    lines = []
    successful = sum(1 for r in results if r.get("success", False))
    lines.append(f"Built {len(results)} layouts, {successful} successful")
    lines.append("-" * 60)

    for result in results:
        status = "OK  " if result.get("success", False) else "FAIL"
        lines.append(f"{status} {result['file']}")
        metrics = result.get("metrics")
        if metrics:
            lines.append(
                f"   Nodes: {metrics['nodes_created']}, Ids: {metrics['ids_registered']}, "
                f"Time: {metrics['processing_time_ms']:.1f}ms"
            )
        if result.get("tree") is not None:
            lines.extend("   " + line for line in format_tree(result["tree"]))
        errors = _error_messages(result)
        for error in errors[:MAX_ERRORS_SHOWN]:
            lines.append(f"   Error: {error}")
        if len(errors) > MAX_ERRORS_SHOWN:
            lines.append(f"   ... and {len(errors) - MAX_ERRORS_SHOWN} more errors")
        for stage in result.get("profile", {}).get("stages", []):
            lines.append(
                f"   {stage['stage_name']}: {stage['duration_ms']:.2f}ms, "
                f"{stage['memory_delta']} bytes"
            )
        lines.append("")

    return "\n".join(lines)


def cmd_inspect(args: argparse.Namespace) -> int:
    """Handle inspect command."""
    profiler = BuildProfiler() if args.profile else None
    processor = LayoutProcessor(build_config(args), args.standard_types, profiler)
    results = [processor.process_file(path) for path in args.paths]

    print(format_results(results, args.format))

    successful = sum(1 for r in results if r.get("success", False))
    return 0 if successful == len(results) else 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Handle validate command."""
    processor = LayoutProcessor(build_config(args))
    results = []

    for path in args.paths:
        result = processor.process_file(path)
        errors = _error_messages(result)
        validation_result: Dict[str, Any] = {
            "file": str(path),
            "valid": result["success"] and not errors,
            "warnings": len([d for d in result.get("diagnostics", [])
                             if d.get("severity") == DiagnosticSeverity.WARNING.name]),
            "errors": len(errors),
        }
        if errors:
            validation_result["error_details"] = errors[:5]
        results.append(validation_result)

    if args.format == "json":
        print(json.dumps(results, indent=2))
    else:
        valid_count = sum(1 for r in results if r["valid"])
        print(f"Validated {len(results)} files, {valid_count} valid")
        print("-" * 50)
        for result in results:
            status = "OK  " if result["valid"] else "FAIL"
            print(f"{status} {result['file']}")
            for error in result.get("error_details", [])[:MAX_ERRORS_SHOWN]:
                print(f"   Error: {error}")

    return 0 if all(r["valid"] for r in results) else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")
    else:
        configure_logging(LayoutConfig().global_.logging_level)

    try:
        if args.command == "inspect":
            return cmd_inspect(args)
        if args.command == "validate":
            return cmd_validate(args)
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())

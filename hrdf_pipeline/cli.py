"""Command-line interface for hrdf-pipeline."""

import argparse
import logging
import sys
from pathlib import Path

from hrdf_pipeline.api import load, validate
from hrdf_pipeline.hrdf.errors import LoadFailed
from hrdf_pipeline.hrdf.manifest import FormatVersion
from hrdf_pipeline.hrdf.models import LoadConfig
from hrdf_pipeline.output.json import write_json_files
from hrdf_pipeline.version import VERSION


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_config(args: argparse.Namespace) -> LoadConfig:
    return LoadConfig(
        input_path=args.input,
        format_version=FormatVersion.parse(args.format_version),
        strict=getattr(args, "strict", False),
        jobs=args.jobs,
        encoding=args.encoding,
        holiday_attributes=tuple(args.holiday_attribute or ()),
    )


def _print_items(items: list, file=None) -> None:
    for item in items:
        print(f"  - {item}", file=file)


def cmd_load(args: argparse.Namespace) -> int:
    """Execute load command."""
    setup_logging(args.verbose)

    try:
        config = build_config(args)
        result = load(args.input, config)
        if args.debug_json:
            write_json_files(Path(args.debug_json), result.model, result.errors)
        if result.errors:
            print(f"\nLoaded with {len(result.errors)} errors:")
            _print_items(result.errors)
        else:
            print("\nLoad successful!")
        print(f"Stats: {result.stats}")
        return 0
    except LoadFailed as e:
        print(f"Error: {e}", file=sys.stderr)
        _print_items(e.errors, file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        logging.exception("Load failed")
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Execute validate command."""
    setup_logging(args.verbose)

    try:
        report = validate(args.input, build_config(args))
        if report.valid:
            print("\nValidation successful!")
            if report.stats:
                print(f"Stats: {report.stats}")
        else:
            print(f"\nValidation failed with {len(report.errors)} errors:")
            _print_items(report.errors)
        if report.warnings:
            print(f"Warnings ({len(report.warnings)}):")
            _print_items(report.warnings)
        return 0 if report.valid else 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        logging.exception("Validation failed")
        return 1


def _add_dataset_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--input", required=True, help="Path to HRDF directory")
    parser.add_argument(
        "--format-version",
        default=FormatVersion.V_5_40_41_2_0_7.value,
        choices=[version.value for version in FormatVersion],
        help=f"HRDF format version (default: {FormatVersion.V_5_40_41_2_0_7.value})",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=0,
        help="Number of decoder threads, 0 for one per CPU (default: 0)",
    )
    parser.add_argument(
        "--encoding",
        default=None,
        help="Text encoding of the dataset files (default: utf-8-sig)",
    )
    parser.add_argument(
        "--holiday-attribute",
        action="append",
        metavar="CODE",
        help="FPLAN attribute code marking journeys that do not run on holidays (repeatable)",
    )


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="hrdf",
        description="Load Swiss HRDF timetable datasets",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Load command
    load_parser = subparsers.add_parser("load", help="Load and resolve an HRDF dataset")
    _add_dataset_arguments(load_parser)
    load_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any record cannot be decoded or resolved",
    )
    load_parser.add_argument(
        "--debug-json",
        metavar="DIR",
        default=None,
        help="Write debug JSON files of the resolved model to DIR",
    )
    load_parser.set_defaults(func=cmd_load)

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Check an HRDF dataset for defects")
    _add_dataset_arguments(validate_parser)
    validate_parser.set_defaults(func=cmd_validate)

    # Parse and execute
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()

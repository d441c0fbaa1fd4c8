"""
pomshift - command line entry point

Converts QAF / Selenium Java page objects and step definitions into
Playwright TypeScript.

    pomshift convert src/test/java
    pomshift convert LoginPage.java out/ --diagnostics
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import structlog

from pomshift import __version__
from pomshift.config import Settings, get_settings
from pomshift.core.pipeline import ConversionPipeline


def configure_logging(settings: Settings) -> None:
    """Configure structured logging to stderr."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, settings.log_level.upper(), logging.WARNING),
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with status 1."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="pomshift",
        description="Convert QAF/Selenium Java test code to Playwright TypeScript",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", parser_class=_ArgumentParser)

    convert_p = subparsers.add_parser("convert", help="Convert a file or directory")
    convert_p.add_argument("input", nargs="?", help="Java file or directory to convert")
    convert_p.add_argument("output", nargs="?", help="Output directory")
    convert_p.add_argument(
        "--diagnostics",
        action="store_true",
        help="Write <stem>.source.txt and <stem>.skipped.txt next to each output",
    )
    convert_p.add_argument(
        "--no-project-context",
        action="store_true",
        help="Convert each file on its own, without the cross-file analysis pass",
    )
    convert_p.add_argument("--log-format", choices=["json", "console"], help="Log renderer")
    convert_p.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ...)")
    convert_p.add_argument("--json", action="store_true", help="Print the batch summary as JSON")
    return parser


def _settings_for(args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.diagnostics:
        overrides["write_diagnostics"] = True
    if args.no_project_context:
        overrides["use_project_context"] = False
    if args.log_format:
        overrides["log_format"] = args.log_format
    if args.log_level:
        overrides["log_level"] = args.log_level
    return get_settings().model_copy(update=overrides)


def _print_summary(summary: dict) -> None:
    print(f"Converted {summary['converted']} of {summary['total']} file(s) into {summary['output_path']}")
    for item in summary["files"]:
        if item["status"] == "failed":
            print(f"  FAILED  {item['source']}: {item['error_message']}")
        elif item["diagnostics"]:
            print(f"  {item['source']}: {item['diagnostics']} line(s) skipped or commented")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return int(e.code or 0)

    if args.command != "convert":
        parser.print_help(sys.stderr)
        return 1
    if not args.input:
        print("ERROR: missing input path", file=sys.stderr)
        return 1

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"ERROR: input path does not exist: {input_path}", file=sys.stderr)
        return 1

    try:
        settings = _settings_for(args)
        configure_logging(settings)
        pipeline = ConversionPipeline(settings)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    result = pipeline.run(input_path, Path(args.output) if args.output else None)
    summary = result.to_dict()
    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        _print_summary(summary)
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()

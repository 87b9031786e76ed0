"""Command-line interface for the observability provisioner."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

from contract.validation import validate_outputs
from errors import GeneratorError, ValidationError
from flags.config import (
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SCRAPE_INTERVAL,
    INTEGRATION_NAMES,
    GeneratorConfig,
    Role,
    resolve_flags,
)
from pipeline.write import generate_all
from settings.config import ObservabilitySettings, load_settings
from verify.verify import verify_determinism

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

COMMANDS = ("generate", "validate", "verify")
_HELP_FLAGS = ("-h", "--help")


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors as ``ValidationError``."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        msg = f"{self.prog}: {message}"
        raise ValidationError(msg)


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--root",
        default="/",
        help="Directory all host paths are re-rooted under (default: /)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Settings file (default: <root>/etc/observability/observability.toml)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )


def _add_generation_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--role",
        required=True,
        choices=[role.value for role in Role],
        help="Instance role",
    )
    parser.add_argument("--secrets-bucket-name", required=True)
    parser.add_argument("--cloudwatch-group-name", required=True)
    parser.add_argument("--amp-workspace-id", required=True)
    parser.add_argument(
        "--metrics-scrape-interval",
        default=str(DEFAULT_SCRAPE_INTERVAL),
        help=f"Scrape interval in seconds (default: {DEFAULT_SCRAPE_INTERVAL})",
    )
    parser.add_argument(
        "--logs-sample-rate",
        default=str(DEFAULT_SAMPLE_RATE),
        help=f"Keep 1 of N log events (default: {DEFAULT_SAMPLE_RATE})",
    )
    parser.add_argument(
        "--tag",
        dest="tags",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Tag attached to every metric and log event (repeatable)",
    )
    for name in sorted(INTEGRATION_NAMES):
        parser.add_argument(
            f"--enable-{name}",
            action="store_true",
            help=f"Scrape the {name} integration",
        )
    parser.add_argument(
        "--enable-service-discovery",
        action="store_true",
        help="Expose a Prometheus exporter sink for service discovery",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog="run-observability")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate", help="Generate the pipeline document and unit files"
    )
    _add_generation_flags(generate_parser)
    _add_common_options(generate_parser)
    generate_parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Write files without restarting node-exporter and Vector",
    )

    validate_parser = subparsers.add_parser(
        "validate", help="Validate previously generated outputs"
    )
    _add_common_options(validate_parser)

    verify_parser = subparsers.add_parser(
        "verify", help="Verify outputs are what the given flags produce"
    )
    _add_generation_flags(verify_parser)
    _add_common_options(verify_parser)

    return parser


def _with_default_command(argv: list[str]) -> list[str]:
    if argv and (argv[0] in COMMANDS or argv[0] in _HELP_FLAGS):
        return argv
    return ["generate", *argv]


def _resolve_config(
    args: argparse.Namespace, settings: ObservabilitySettings
) -> GeneratorConfig:
    return resolve_flags(
        role=args.role,
        secrets_bucket_name=args.secrets_bucket_name,
        cloudwatch_group_name=args.cloudwatch_group_name,
        amp_workspace_id=args.amp_workspace_id,
        metrics_scrape_interval=args.metrics_scrape_interval,
        logs_sample_rate=args.logs_sample_rate,
        tags=args.tags,
        enable={name: getattr(args, f"enable_{name}") for name in INTEGRATION_NAMES},
        service_discovery=args.enable_service_discovery,
        tag_policy=settings.tags.policy,
    )


def _handle_generate(
    args: argparse.Namespace, root: Path, settings: ObservabilitySettings
) -> int:
    config = _resolve_config(args, settings)
    summary = generate_all(
        config=config,
        settings=settings,
        root=root,
        reload=not args.no_reload,
    )
    logger.info(
        "generated %d sources, %d transforms, %d sinks for role %s",
        summary["source_count"],
        summary["transform_count"],
        summary["sink_count"],
        config.role.value,
    )
    return 0


def _handle_validate(root: Path, settings: ObservabilitySettings) -> int:
    result = validate_outputs(root, settings)
    for warning in result.warnings:
        logger.warning("%s: %s", warning.location(), warning.message)
    if result.errors:
        for error in result.errors:
            sys.stderr.write(f"{error.location()}: {error.message}\n")
        return 1
    return 0


def _handle_verify(
    args: argparse.Namespace, root: Path, settings: ObservabilitySettings
) -> int:
    config = _resolve_config(args, settings)
    try:
        result = verify_determinism(root=root, config=config, settings=settings)
    except (FileNotFoundError, ValueError) as exc:
        sys.stderr.write(f"root: {root}\n")
        sys.stderr.write(f"error: {exc}\n")
        return 1
    if not result.ok:
        for label, paths in (
            ("missing", result.missing),
            ("extra", result.extra),
            ("mismatches", result.mismatches),
        ):
            for path in paths:
                sys.stderr.write(f"{label}: {path}\n")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    logging.basicConfig(format=LOG_FORMAT)
    parser = _build_parser()
    try:
        args = parser.parse_args(_with_default_command(list(argv)))
    except ValidationError as exc:
        logger.error("%s", exc)
        return exc.exit_code

    logging.getLogger().setLevel(args.log_level)

    root = Path(args.root).expanduser().resolve()
    config_path = Path(args.config).expanduser() if args.config else None

    try:
        settings = load_settings(root, config_path)

        if args.command == "generate":
            return _handle_generate(args, root, settings)

        if args.command == "validate":
            return _handle_validate(root, settings)

        if args.command == "verify":
            return _handle_verify(args, root, settings)
    except GeneratorError as exc:
        logger.error("%s", exc)
        return exc.exit_code

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())

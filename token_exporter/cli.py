"""
Token Exporter - CLI.

============================================================
USAGE
============================================================
python -m token_exporter
python -m token_exporter --output ./tokens --limit 10
python -m token_exporter --chain polygon-pos --force
python -m token_exporter --strategy live --rpc-timeout 5

============================================================
EXIT CODES
============================================================
0   run completed (per-token failures are reported, not fatal)
1   feed fetch failed, or configuration is invalid
130 interrupted

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
import uuid
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from token_exporter import __version__
from token_exporter.config import ExportConfig, ExporterSettings
from token_exporter.exceptions import ConfigurationError, FeedFetchError, OutputWriteError
from token_exporter.logging_utils import LOG_FORMATS, setup_logging
from token_exporter.models import InfoStrategy
from token_exporter.service import ExportService


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="token-exporter",
        description="Export one JSON file per token per chain from the DefiLlama token list",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                  # export everything to ./tokens
  %(prog)s -c ethereum -l 20                # one chain, 20 items per window
  %(prog)s -f                               # overwrite existing files
  %(prog)s --strategy live                  # verify fields on-chain
        """,
    )

    # --------------------------------------------------------
    # Export Options
    # --------------------------------------------------------
    export_group = parser.add_argument_group("Export Options")

    export_group.add_argument(
        "--output", "-o",
        type=str,
        default="./tokens",
        metavar="DIR",
        help="Output directory (default: ./tokens)",
    )

    export_group.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force override existing files",
    )

    export_group.add_argument(
        "--chain", "-c",
        type=str,
        default=None,
        help="Filter by chain name (feed id such as polygon-pos, or target id such as polygon)",
    )

    export_group.add_argument(
        "--limit", "-l",
        type=int,
        default=5,
        metavar="N",
        help="Concurrent processing limit, items per window (default: 5)",
    )

    # --------------------------------------------------------
    # Source Options (default to environment)
    # --------------------------------------------------------
    source_group = parser.add_argument_group("Source Options")

    source_group.add_argument(
        "--feed-url",
        type=str,
        default=None,
        help="Token feed URL (env: TOKEN_EXPORT_FEED_URL)",
    )

    source_group.add_argument(
        "--strategy",
        type=str,
        choices=[s.value for s in InfoStrategy],
        default=None,
        help="Token info source: trust the feed or read contracts (env: TOKEN_EXPORT_STRATEGY)",
    )

    source_group.add_argument(
        "--rpc-timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Timeout per contract read (env: TOKEN_EXPORT_RPC_TIMEOUT)",
    )

    source_group.add_argument(
        "--passthrough-unknown-chains",
        action="store_true",
        default=None,
        help="Export chains missing from the chain table under their feed id",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=list(LOG_FORMATS),
        default="text",
        help="Logging format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> ExportConfig:
    return ExportConfig(
        output_dir=Path(args.output),
        force=args.force,
        chain_filter=args.chain.strip().lower() if args.chain else None,
        concurrency=args.limit,
    )


def build_settings(args: argparse.Namespace, base: ExporterSettings) -> ExporterSettings:
    """Apply CLI overrides on top of environment settings."""
    overrides = {}
    if args.feed_url is not None:
        overrides["feed_url"] = args.feed_url
    if args.strategy is not None:
        overrides["strategy"] = InfoStrategy(args.strategy)
    if args.rpc_timeout is not None:
        overrides["rpc_timeout_seconds"] = args.rpc_timeout
    if args.passthrough_unknown_chains is not None:
        overrides["passthrough_unknown_chains"] = args.passthrough_unknown_chains
    return replace(base, **overrides)


def validate_args(args: argparse.Namespace) -> List[str]:
    errors = []
    if args.limit < 1:
        errors.append("--limit must be at least 1")
    if args.rpc_timeout is not None and args.rpc_timeout <= 0:
        errors.append("--rpc-timeout must be positive")
    if args.chain is not None and not args.chain.strip():
        errors.append("--chain must not be blank")
    return errors


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(config: ExportConfig, settings: ExporterSettings) -> int:
    """
    Async main entry point.

    Returns:
        Exit code
    """
    try:
        async with ExportService(config, settings) as service:
            summary = await service.run()
    except FeedFetchError as e:
        logger.error(f"Error processing tokens: {e}")
        logger.debug(json.dumps(e.to_dict()))
        return 1
    except OutputWriteError as e:
        logger.error(f"Cannot prepare output directory: {e}")
        return 1

    logger.info(f"Summary: {json.dumps(summary.to_dict())}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    setup_logging(args.log_level, args.log_format, run_id=uuid.uuid4().hex[:8])

    try:
        settings = build_settings(args, ExporterSettings.from_env())
        config = build_config(args)
        config_errors = config.validate() + settings.validate()
        if config_errors:
            raise ConfigurationError(message="; ".join(config_errors), errors=config_errors)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    try:
        return asyncio.run(async_main(config, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

"""Command line entry point for the embedding sync worker.

Examples:
    jetstream-embeddings                      # one pass over every record type
    jetstream-embeddings --only=offers --dry-run
    jetstream-embeddings --continuous --interval=600
    jetstream-embeddings --target=index --limit=200
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv

from jetstream_sync.models.embedding_models import RecordType
from jetstream_sync.models.embedding_sync_models import EmbeddingSyncSettings
from jetstream_sync.pipelines.embedding_sync_orchestrator import EmbeddingSyncOrchestrator, build_orchestrator
from jetstream_sync.pipelines.sync_scheduler import SyncScheduler
from jetstream_sync.run_logging import configure_run_logging

logger = logging.getLogger(__name__)

ONLY_CHOICES = ["all"] + [record_type.value for record_type in RecordType]


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")
    return number


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jetstream-embeddings",
        description="Generate embeddings for JetStream records that are missing them",
    )

    # Scheduling options
    parser.add_argument("--continuous", action="store_true", help="Keep running, starting a new pass after each wait")
    parser.add_argument("--interval", type=_positive_float, default=None,
                        help="Seconds between passes in continuous mode (default: 300)")

    # Selection options
    parser.add_argument("--batch-size", "--limit", dest="batch_size", type=_positive_int, default=None,
                        help="Maximum records per type per pass (default: 50; every record with --target=index)")
    parser.add_argument("--only", choices=ONLY_CHOICES, default="all",
                        help="Only process one record type (default: all)")

    # Output options
    parser.add_argument("--target", choices=["store", "index"], default="store",
                        help="Write vectors onto domain rows (store) or into the vector index (index)")
    parser.add_argument("--dry-run", action="store_true", help="Generate text and embeddings without writing them")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--log-dir", default="logs", help="Directory for run log files (default: logs)")

    return parser


async def _run(args: argparse.Namespace, orchestrator: EmbeddingSyncOrchestrator,
               settings: EmbeddingSyncSettings) -> None:
    only = None if args.only == "all" else RecordType(args.only)
    async def run_pass():
        return await orchestrator.run_pass(only=only, batch_size=args.batch_size, dry_run=args.dry_run)

    scheduler = SyncScheduler(
        run_pass,
        continuous=args.continuous,
        interval_seconds=args.interval or settings.default_interval_seconds,
        busy_interval_ceiling=settings.busy_interval_ceiling_seconds,
    )
    await scheduler.run()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.continuous and args.target == "index":
        parser.error("--continuous requires --target=store")
    if args.continuous and args.dry_run:
        parser.error("--continuous cannot be combined with --dry-run")

    load_dotenv()

    log_files = configure_run_logging(args.log_dir, datetime.now(), debug=args.debug)
    exit_code = 0

    try:
        settings = EmbeddingSyncSettings.from_env()
        logger.info(f"JetStream embedding sync starting ({datetime.now().isoformat()})")
        logger.info(f"Options: only={args.only} batch_size={args.batch_size} target={args.target} "
                    f"continuous={args.continuous} interval={args.interval} dry_run={args.dry_run}")

        orchestrator = build_orchestrator(settings, target=args.target, dry_run=args.dry_run)
        asyncio.run(_run(args, orchestrator, settings))

    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except Exception as e:
        logger.error(f"Fatal error in embedding worker: {str(e)}", exc_info=args.debug)
        exit_code = 1

    logger.info(f"Session log: {log_files.session_log}")
    if log_files.error_log_has_content():
        logger.info(f"Errors were logged to: {log_files.error_log}")
    log_files.close()

    return exit_code


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()

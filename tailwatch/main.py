"""
tailwatch - Main entry point

Watches a root directory for new or modified log files and tails each one,
printing every new line as ``source: <path>, line: <content>``.
"""

import argparse
import asyncio
import signal
import sys
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from tailwatch.models.schemas import CollectorStatus, StartPosition
from tailwatch.tailing.orchestrator import TailOrchestrator
from tailwatch.tailing.sinks import ConsoleSink, LineSink
from tailwatch.utils.config import Settings, load_settings
from tailwatch.watchers.filesystem import (
    EventDeliveryError,
    FileSystemEventSource,
    WatchSetupError,
)

EXIT_OK = 0
EXIT_WATCH_SETUP = 1
EXIT_CONFIG = 2
EXIT_EVENT_DELIVERY = 3


def configure_logging(level: str = "INFO") -> None:
    """Send diagnostics to stderr; stdout carries tailed lines."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level.upper()
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        prog="tailwatch",
        description="Watch a directory tree and tail every new or modified file.",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Directory to watch recursively (default: $ROOT_DIR).",
    )
    parser.add_argument(
        "--poll-ms",
        type=int,
        default=None,
        help="Idle polling interval of each tailed file in milliseconds (default: $POLLING_INTERVAL_MS or 500).",
    )
    position = parser.add_mutually_exclusive_group()
    position.add_argument(
        "--from-start",
        dest="start_position",
        action="store_const",
        const=StartPosition.START,
        help="Replay existing content of newly discovered files (default).",
    )
    position.add_argument(
        "--from-end",
        dest="start_position",
        action="store_const",
        const=StartPosition.END,
        help="Only emit lines appended after a file is discovered.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Diagnostic log level (default: $LOG_LEVEL or INFO).",
    )

    return parser.parse_args(argv)


def install_signal_handlers(orchestrator: TailOrchestrator) -> None:
    """Route SIGINT/SIGTERM to the orchestrator's cancellation token."""
    loop = asyncio.get_running_loop()

    def _signal_handler(signum: int) -> None:
        logger.info(f"Received signal {signum}, shutting down.")
        orchestrator.request_stop()

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, _signal_handler, signum)
        except (NotImplementedError, RuntimeError) as e:
            logger.debug(f"Signal handler for {signum} unavailable: {e}")


async def run_collector(
    settings: Settings,
    sink: Optional[LineSink] = None,
    stop_event: Optional[asyncio.Event] = None,
    handle_signals: bool = True,
) -> CollectorStatus:
    """
    Run the collector until stopped.

    Args:
        settings: Collector settings
        sink: Line sink (console if None)
        stop_event: External cancellation token
        handle_signals: Install SIGINT/SIGTERM handlers

    Returns:
        Final collector status

    Raises:
        WatchSetupError: If the root directory cannot be watched
        EventDeliveryError: If the event stream breaks
    """
    source = FileSystemEventSource(
        settings.resolved_root(),
        queue_size=settings.event_queue_size,
        health_check_interval=settings.health_check_interval_s,
    )
    orchestrator = TailOrchestrator(
        source,
        sink if sink is not None else ConsoleSink(),
        poll_interval=settings.polling_interval,
        start_position=settings.start_position,
        stop_event=stop_event,
    )

    if handle_signals:
        install_signal_handlers(orchestrator)

    logger.info(f"Root: {source.root}")
    logger.info(f"Polling interval: {settings.polling_interval_ms}ms")
    logger.info(f"Start position: {settings.start_position.value}")

    try:
        await orchestrator.run()
    finally:
        await orchestrator.shutdown(settings.shutdown_timeout_s)

    return orchestrator.status()


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI."""

    args = parse_args(argv)
    configure_logging(args.log_level or "INFO")

    try:
        settings = load_settings(
            root_dir=args.root,
            polling_interval_ms=args.poll_ms,
            start_position=args.start_position,
            log_level=args.log_level,
        )
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG

    if args.log_level is None:
        configure_logging(settings.log_level)

    try:
        status = asyncio.run(run_collector(settings))

    except WatchSetupError as e:
        logger.error(f"Watch setup failed: {e}")
        return EXIT_WATCH_SETUP
    except EventDeliveryError as e:
        logger.error(f"Event stream failed: {e}")
        return EXIT_EVENT_DELIVERY
    except KeyboardInterrupt:
        logger.info("Collector stopped by user")
        return EXIT_OK

    logger.info(
        f"Collector stopped: {status.watched_files} files watched, "
        f"{status.lines_emitted} lines emitted, {status.failed_tasks} failed"
    )
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())

#!/usr/bin/env python3
"""
Header Watch CLI - Command-line interface for watching one URL.

Usage:
    python -m header_watch.interface.watch -url https://example.com \\
        [-status 200] [-server nginx] [-content_type text/html] \\
        [-user_agent ""] [-tick 60s] [-timeout 10s] [-config watch.conf]

Exit codes:
    0: Stopped by SIGINT/SIGTERM
    1: Configuration error or request failure
"""

import logging
import signal
import sys
import threading
from typing import Any, Dict, List, Optional

from header_watch.application.poll_loop import PollLoop
from header_watch.health import ConfigError, RequestFailed, load_expectation

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def setup_logging(verbose: bool = False, log_file: str = "") -> None:
    """
    Setup logging configuration.

    Args:
        verbose: If True, enable DEBUG level logging
        log_file: Write to this file instead of stdout when set
    """
    level = logging.DEBUG if verbose else logging.INFO
    destination: Dict[str, Any] = (
        {"filename": log_file} if log_file else {"stream": sys.stdout}
    )
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        **destination,
    )


def install_signal_handlers(cancel: threading.Event) -> Dict[int, Any]:
    """
    Route SIGINT and SIGTERM to the cancellation event.

    Args:
        cancel: Event set when a shutdown signal arrives

    Returns:
        Previous handlers by signal number, for restore_signal_handlers()
    """
    if threading.current_thread() is not threading.main_thread():
        logger.debug("Not on the main thread, leaving signal handlers alone")
        return {}

    def _shutdown(signum):
        logger.info("Got %s, shutting down", signal.Signals(signum).name)
        cancel.set()

    def _handle(signum, frame):
        # The main thread may hold the event's lock inside Event.wait()
        threading.Thread(
            target=_shutdown,
            args=(signum,),
            name="header-watch-shutdown",
            daemon=True,
        ).start()

    return {signum: signal.signal(signum, _handle) for signum in SHUTDOWN_SIGNALS}


def restore_signal_handlers(previous: Dict[int, Any]) -> None:
    """Put back the handlers returned by install_signal_handlers()."""
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def main(
    argv: Optional[List[str]] = None, cancel: Optional[threading.Event] = None
) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments without the program name
        cancel: Cancellation event to use (default: a fresh one)

    Returns:
        Exit code: 0 on shutdown by signal, 1 on any error
    """
    try:
        expectation, settings = load_expectation(argv)
    except ConfigError as e:
        print(f"header-watch: {e}", file=sys.stderr)
        return 1

    try:
        setup_logging(verbose=settings.verbose, log_file=settings.log_file)
    except OSError as e:
        print(f"header-watch: cannot open log file: {e}", file=sys.stderr)
        return 1

    if cancel is None:
        cancel = threading.Event()

    previous = install_signal_handlers(cancel)
    try:
        PollLoop(expectation, cancel).run()
    except RequestFailed as e:
        logger.error("Watch stopped: %s", e)
        print(f"header-watch: {e}", file=sys.stderr)
        return 1
    finally:
        restore_signal_handlers(previous)

    logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())

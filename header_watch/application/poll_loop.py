"""
Poll Loop - Periodically checks one URL against its expectation.

The loop owns the tick schedule and the cancellation lifecycle:
1. Waits for the next tick (interruptible by cancellation)
2. Fetches the URL once, with no retries
3. Evaluates the response and logs one line per mismatch

Collaborators (fetcher, ticker, logger, cancellation event) are injected so
the loop can run in-process, e.g. from tests, without touching the process.
"""

import logging
import threading
from typing import Callable, List, Optional

import requests  # type: ignore

from header_watch.health import checks
from header_watch.health.checks import Mismatch, Observation
from header_watch.health.config import Expectation, format_duration
from header_watch.health.ticker import Ticker

logger = logging.getLogger(__name__)

Fetcher = Callable[..., Observation]


class PollLoop:
    """
    Runs checks on a fixed interval until cancelled.

    Checks never overlap: each tick's request and evaluation complete before
    the next wait starts. Cancellation is observed only between ticks, so an
    in-flight request is always allowed to finish.
    """

    def __init__(
        self,
        expectation: Expectation,
        cancel: threading.Event,
        fetcher: Optional[Fetcher] = None,
        ticker: Optional[Ticker] = None,
        log: Optional[logging.Logger] = None,
    ):
        """
        Initialize the loop with its dependencies.

        Args:
            expectation: Values every response is compared against
            cancel: Event that stops the loop once set
            fetcher: Callable like checks.fetch(url, session=, timeout=)
            ticker: Ticker pacing the checks (default: one built from
                    expectation.tick when run() starts)
            log: Logger for lifecycle and mismatch lines
        """
        self.expectation = expectation
        self.cancel = cancel
        self.fetcher = fetcher or checks.fetch
        self.ticker = ticker
        self.log = log or logger
        self.session: Optional[requests.Session] = None
        self.ticks = 0
        self.mismatches = 0

    def run(self) -> None:
        """
        Run until the cancellation event is set.

        Raises:
            RequestFailed: If a tick's request fails; the loop stops at once
        """
        if self.ticker is None:
            self.ticker = Ticker(self.expectation.tick.total_seconds())

        self.log.info(
            "Watching %s every %s",
            self.expectation.url,
            format_duration(self.expectation.tick),
        )

        with requests.Session() as session:
            self.session = session
            try:
                while self.ticker.wait(self.cancel):
                    self.check_once()
            finally:
                self.session = None

        self.log.info(
            "Stopped watching %s after %d check(s), %d mismatch(es)",
            self.expectation.url,
            self.ticks,
            self.mismatches,
        )

    def check_once(self) -> List[Mismatch]:
        """
        Perform a single check: fetch, evaluate, report.

        Returns:
            Mismatches found for this tick

        Raises:
            RequestFailed: If the request fails
        """
        timeout = self.expectation.timeout
        observation = self.fetcher(
            self.expectation.url,
            session=self.session,
            timeout=timeout.total_seconds() if timeout is not None else None,
        )
        self.ticks += 1

        mismatches = checks.evaluate(observation, self.expectation)
        checks.report_mismatches(mismatches, self.log)
        self.mismatches += len(mismatches)

        if not mismatches:
            self.log.debug(
                "Check %d of %s: all fields match", self.ticks, self.expectation.url
            )
        return mismatches

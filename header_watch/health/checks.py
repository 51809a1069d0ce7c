"""
Health checks - Fetching and comparing a response against an expectation.

This module provides the single HTTP request made per tick and the pure
comparison of what came back with what the watch expects.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, NamedTuple, Optional

import requests  # type: ignore

from header_watch.health.config import Expectation

logger = logging.getLogger(__name__)


class RequestFailed(Exception):
    """Raised when the GET request for a tick cannot be completed."""

    def __init__(self, url: str, cause: Exception):
        super().__init__(f"Request to {url} failed: {cause}")
        self.url = url
        self.cause = cause


@dataclass(frozen=True)
class Observation:
    """Status code and watched headers taken from one response."""

    status_code: int
    server: str = ""
    content_type: str = ""
    user_agent: str = ""

    @classmethod
    def from_response(cls, response: Any) -> "Observation":
        """
        Build an Observation from a requests response.

        Header lookups are case-insensitive; an absent header becomes "".
        """
        headers = response.headers
        return cls(
            status_code=response.status_code,
            server=headers.get("server") or "",
            content_type=headers.get("content-type") or "",
            user_agent=headers.get("user-agent") or "",
        )


class Mismatch(NamedTuple):
    """One field whose observed value differs from the expected one."""

    field: str
    expected: Any
    observed: Any


def fetch(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> Observation:
    """
    Issue one GET request and capture the watched parts of the response.

    No retries are made: any failure is reported to the caller.

    Args:
        url: URL to fetch
        session: Session to reuse connections with (default: a one-off request)
        timeout: Request timeout in seconds, None to wait indefinitely

    Returns:
        Observation of the response

    Raises:
        RequestFailed: On connection errors, timeouts or malformed responses
    """
    getter = session.get if session is not None else requests.get
    try:
        response = getter(url, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise RequestFailed(url, e) from e

    try:
        observation = Observation.from_response(response)
    finally:
        response.close()

    logger.debug(
        "GET %s -> %d (server=%r, content-type=%r, user-agent=%r)",
        url,
        observation.status_code,
        observation.server,
        observation.content_type,
        observation.user_agent,
    )
    return observation


def evaluate(observation: Observation, expectation: Expectation) -> List[Mismatch]:
    """
    Compare an observation with the expectation using exact equality.

    Header values are compared case-sensitively, and an expected empty string
    only matches an absent or blank header.

    Args:
        observation: Values seen in the response
        expectation: Values the watch expects

    Returns:
        List of mismatches in field order (status, server, content-type,
        user-agent); empty when everything matches
    """
    pairs = (
        ("status", expectation.status_code, observation.status_code),
        ("server", expectation.server, observation.server),
        ("content-type", expectation.content_type, observation.content_type),
        ("user-agent", expectation.user_agent, observation.user_agent),
    )
    return [
        Mismatch(field, expected, observed)
        for field, expected, observed in pairs
        if observed != expected
    ]


def report_mismatches(
    mismatches: List[Mismatch], log: Optional[logging.Logger] = None
) -> None:
    """
    Log one line per mismatch.

    Args:
        mismatches: Mismatches to report
        log: Logger to write to (default: this module's logger)
    """
    log = log or logger
    for mismatch in mismatches:
        if mismatch.field == "status":
            log.warning(
                "Status code mismatch: got %d, expected %d",
                mismatch.observed,
                mismatch.expected,
            )
        else:
            log.warning(
                "%s header mismatch: got %r, expected %r",
                mismatch.field.capitalize(),
                mismatch.observed,
                mismatch.expected,
            )

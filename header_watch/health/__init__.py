"""
Health module - Building blocks for watching one HTTP endpoint.

This module provides the watch configuration, the per-tick request and
comparison, and the ticker that paces the checks.
"""

from header_watch.health.checks import (
    Mismatch,
    Observation,
    RequestFailed,
    evaluate,
    fetch,
    report_mismatches,
)
from header_watch.health.config import (
    ConfigError,
    Expectation,
    Settings,
    load_expectation,
    parse_duration,
)
from header_watch.health.ticker import Ticker

__all__ = [
    "ConfigError",
    "Expectation",
    "Mismatch",
    "Observation",
    "RequestFailed",
    "Settings",
    "Ticker",
    "evaluate",
    "fetch",
    "load_expectation",
    "parse_duration",
    "report_mismatches",
]

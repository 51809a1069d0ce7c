"""
Watch configuration - Builds the expectation for a watch from flags and files.

Options can be given on the command line or in a config file and share one
namespace. Command line values win over file values, which win over the
built-in defaults.
"""

import argparse
import json
import logging
import re
import threading
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_STATUS = 200
DEFAULT_TICK = timedelta(seconds=60)
# Longest wait the platform can block on
MAX_DURATION = timedelta(seconds=threading.TIMEOUT_MAX)


class ConfigError(ValueError):
    """Raised when flags or a config file cannot be turned into settings."""


@dataclass(frozen=True)
class Expectation:
    """
    Values every response of the watched URL is compared against.

    An empty header value means the header is expected to be absent (or blank).
    ``timeout`` of None means requests wait for the server indefinitely.
    """

    url: str
    status_code: int = DEFAULT_STATUS
    server: str = ""
    content_type: str = ""
    user_agent: str = ""
    tick: timedelta = DEFAULT_TICK
    timeout: Optional[timedelta] = None


@dataclass(frozen=True)
class Settings:
    """Process-level options that are not part of the expectation."""

    log_file: str = ""
    verbose: bool = False


# Keys accepted in a config file (every flag except --config itself)
FILE_KEYS = (
    "content_type",
    "server",
    "status",
    "tick",
    "url",
    "user_agent",
    "timeout",
    "log_file",
    "verbose",
)

_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_FLAG_LINE = re.compile(r"^([A-Za-z_][\w-]*)\s*(?:[=\s]\s*(.*))?$")
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def parse_duration(value: Any) -> timedelta:
    """
    Parse a duration such as ``60s``, ``1m30s``, ``250ms`` or ``1.5h``.

    Args:
        value: Duration string, a number of seconds, or a timedelta

    Returns:
        timedelta for the given duration

    Raises:
        ConfigError: If the value is not a valid duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return _seconds(value, value)
    if not isinstance(value, str):
        raise ConfigError(f"Invalid duration: {value!r}")

    text = value.strip()
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if not text:
        raise ConfigError(f"Invalid duration: {value!r}")

    # A bare number is taken as seconds
    if _NUMBER.fullmatch(text):
        return _seconds(sign * float(text), value)

    seconds = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ConfigError(f"Invalid duration: {value!r}")

    return _seconds(sign * seconds, value)


def _seconds(seconds: float, value: Any) -> timedelta:
    try:
        return timedelta(seconds=seconds)
    except (OverflowError, ValueError) as e:
        raise ConfigError(f"Invalid duration: {value!r}") from e


def format_duration(duration: timedelta) -> str:
    """Render a timedelta in seconds, e.g. ``60s`` or ``0.25s``."""
    return f"{duration.total_seconds():g}s"


class _FlagParser(argparse.ArgumentParser):
    """ArgumentParser that raises ConfigError instead of exiting."""

    def error(self, message: str):  # type: ignore[override]
        raise ConfigError(message)


def build_parser() -> argparse.ArgumentParser:
    """
    Build the flag parser.

    Every option accepts both ``-name`` and ``--name``; unset options are left
    out of the parsed namespace so config file values can fill them in.
    """
    parser = _FlagParser(
        prog="header-watch",
        description="Poll a URL and log status/header mismatches",
        argument_default=argparse.SUPPRESS,
        allow_abbrev=False,
    )
    parser.add_argument(
        "-config",
        "--config",
        help="Path to config file (.json, or 'name value' lines)",
    )
    parser.add_argument(
        "-content_type",
        "--content_type",
        "--content-type",
        dest="content_type",
        help="Expected Content-Type header value (default: empty)",
    )
    parser.add_argument(
        "-server",
        "--server",
        help="Expected Server header value (default: empty)",
    )
    parser.add_argument(
        "-status",
        "--status",
        type=int,
        help=f"Expected HTTP status code (default: {DEFAULT_STATUS})",
    )
    parser.add_argument(
        "-tick",
        "--tick",
        type=parse_duration,
        help=f"Polling interval (default: {format_duration(DEFAULT_TICK)})",
    )
    parser.add_argument("-url", "--url", help="Request URL")
    parser.add_argument(
        "-user_agent",
        "--user_agent",
        "--user-agent",
        dest="user_agent",
        help="Expected User-Agent header value (default: empty)",
    )
    parser.add_argument(
        "-timeout",
        "--timeout",
        type=parse_duration,
        help="Request timeout (default: none)",
    )
    parser.add_argument(
        "-log_file",
        "--log_file",
        "--log-file",
        dest="log_file",
        help="Write log lines to this file instead of stdout",
    )
    parser.add_argument(
        "-v",
        "-verbose",
        "--verbose",
        dest="verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    return parser


def read_config_file(config_path: str) -> Dict[str, Any]:
    """
    Load option values from a config file.

    ``.json`` files hold a single object keyed by option name. Any other file
    is read as flag lines (``name value`` or ``name=value``); blank lines and
    lines starting with ``#`` are skipped.

    Args:
        config_path: Path to the config file

    Returns:
        Dict of option name -> typed value

    Raises:
        ConfigError: If the file is missing, malformed or has unknown options
    """
    config_file = Path(config_path)
    if not config_file.is_file():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        text = config_file.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not read config file {config_path}: {e}") from e

    if config_file.suffix == ".json":
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file must hold a JSON object: {config_path}")
    else:
        raw = _parse_flag_lines(text, config_path)

    values: Dict[str, Any] = {}
    for key, value in raw.items():
        name = key.replace("-", "_")
        if name not in FILE_KEYS:
            raise ConfigError(f"Unknown option '{key}' in config file {config_path}")
        values[name] = _coerce(name, value)

    logger.debug("Loaded %d option(s) from %s", len(values), config_path)
    return values


def _parse_flag_lines(text: str, config_path: str) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        match = _FLAG_LINE.match(line)
        if not match:
            raise ConfigError(f"Malformed line {lineno} in {config_path}: {line!r}")
        key, value = match.group(1), match.group(2)
        # A bare name switches a boolean flag on
        values[key] = "true" if value is None else value.strip()
    return values


def _coerce(name: str, value: Any) -> Any:
    if name in ("tick", "timeout"):
        return parse_duration(value)

    if name == "status":
        if isinstance(value, (bool, float)):
            raise ConfigError(f"Option 'status' must be an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"Option 'status' must be an integer, got {value!r}"
            ) from e

    if name == "verbose":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in _TRUE + _FALSE:
            return value.lower() in _TRUE
        raise ConfigError(f"Option 'verbose' must be a boolean, got {value!r}")

    if not isinstance(value, str):
        raise ConfigError(f"Option '{name}' must be a string, got {value!r}")
    return value


def load_expectation(
    argv: Optional[List[str]] = None,
) -> Tuple[Expectation, Settings]:
    """
    Parse flags (and the config file they point to) into settings.

    Args:
        argv: Command line arguments without the program name.
              If None, sys.argv[1:] is used.

    Returns:
        Tuple of (Expectation, Settings)

    Raises:
        ConfigError: If any option is invalid or the URL is missing
    """
    cli_values = vars(build_parser().parse_args(argv))
    config_path = cli_values.pop("config", None)

    values: Dict[str, Any] = {}
    if config_path:
        values.update(read_config_file(config_path))
    values.update(cli_values)

    return build_expectation(values), Settings(
        log_file=values.get("log_file", ""),
        verbose=bool(values.get("verbose", False)),
    )


def build_expectation(values: Dict[str, Any]) -> Expectation:
    """
    Validate merged option values and build the Expectation.

    Args:
        values: Option name -> typed value, defaults filled in for absent keys

    Returns:
        Expectation

    Raises:
        ConfigError: If the URL is empty or a duration is not positive
                     or longer than the platform can wait
    """
    url = values.get("url", "").strip()
    if not url:
        raise ConfigError("Option 'url' is required")

    tick = values.get("tick", DEFAULT_TICK)
    if tick <= timedelta(0):
        raise ConfigError(
            f"Option 'tick' must be positive, got {format_duration(tick)}"
        )
    if tick > MAX_DURATION:
        raise ConfigError(
            f"Option 'tick' must be at most {format_duration(MAX_DURATION)}, "
            f"got {format_duration(tick)}"
        )

    timeout = values.get("timeout")
    if timeout is not None and timeout <= timedelta(0):
        raise ConfigError(
            f"Option 'timeout' must be positive, got {format_duration(timeout)}"
        )
    if timeout is not None and timeout > MAX_DURATION:
        raise ConfigError(
            f"Option 'timeout' must be at most {format_duration(MAX_DURATION)}, "
            f"got {format_duration(timeout)}"
        )

    return Expectation(
        url=url,
        status_code=values.get("status", DEFAULT_STATUS),
        server=values.get("server", ""),
        content_type=values.get("content_type", ""),
        user_agent=values.get("user_agent", ""),
        tick=tick,
        timeout=timeout,
    )

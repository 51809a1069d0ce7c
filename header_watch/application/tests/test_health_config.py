"""
Tests for health config module.
"""

import dataclasses
import json
import tempfile
import threading
from datetime import timedelta
from pathlib import Path

import pytest

from header_watch.health import config
from header_watch.health.config import ConfigError, Expectation, Settings


class TestParseDuration:
    """Tests for parse_duration function."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("60s", timedelta(seconds=60)),
            ("1m30s", timedelta(seconds=90)),
            ("250ms", timedelta(milliseconds=250)),
            ("1.5h", timedelta(minutes=90)),
            ("2h45m", timedelta(hours=2, minutes=45)),
            ("500us", timedelta(microseconds=500)),
            ("10", timedelta(seconds=10)),
            ("0.5", timedelta(milliseconds=500)),
            ("-5s", timedelta(seconds=-5)),
        ],
    )
    def test_valid_durations(self, text, expected):
        """Test Go-style duration strings and bare seconds."""
        assert config.parse_duration(text) == expected

    def test_numbers_are_seconds(self):
        """Test numeric values are taken as seconds."""
        assert config.parse_duration(30) == timedelta(seconds=30)
        assert config.parse_duration(0.25) == timedelta(milliseconds=250)

    def test_timedelta_passthrough(self):
        """Test timedelta values are returned unchanged."""
        value = timedelta(seconds=3)
        assert config.parse_duration(value) is value

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "s",
            "10x",
            "1m 30s",
            "ms10",
            "inf",
            "nan",
            "1..5s",
            True,
            None,
            "99999999999h",
            "1" * 400,
            10**30,
            float("inf"),
            float("nan"),
        ],
    )
    def test_invalid_durations(self, value):
        """Test malformed durations raise ConfigError."""
        with pytest.raises(ConfigError):
            config.parse_duration(value)


class TestLoadExpectation:
    """Tests for load_expectation function."""

    @pytest.fixture
    def temp_dir(self):
        """Create temporary directory for tests."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_defaults(self):
        """Test defaults for everything except the URL."""
        expectation, settings = config.load_expectation(["-url", "http://example.com"])

        assert expectation == Expectation(
            url="http://example.com",
            status_code=200,
            server="",
            content_type="",
            user_agent="",
            tick=timedelta(seconds=60),
            timeout=None,
        )
        assert settings == Settings(log_file="", verbose=False)

    def test_all_flags(self):
        """Test every flag is parsed into the expectation."""
        expectation, settings = config.load_expectation(
            [
                "-url=http://example.com/health",
                "-status",
                "204",
                "-server",
                "nginx",
                "--content-type",
                "application/json",
                "--user_agent",
                "probe/1.0",
                "-tick",
                "5s",
                "-timeout",
                "2s",
                "--log-file",
                "/tmp/watch.log",
                "-v",
            ]
        )

        assert expectation.url == "http://example.com/health"
        assert expectation.status_code == 204
        assert expectation.server == "nginx"
        assert expectation.content_type == "application/json"
        assert expectation.user_agent == "probe/1.0"
        assert expectation.tick == timedelta(seconds=5)
        assert expectation.timeout == timedelta(seconds=2)
        assert settings == Settings(log_file="/tmp/watch.log", verbose=True)

    def test_missing_url(self):
        """Test an empty URL is a configuration error."""
        with pytest.raises(ConfigError, match="url"):
            config.load_expectation([])

    def test_bad_status(self):
        """Test a non-integer status is a configuration error."""
        with pytest.raises(ConfigError):
            config.load_expectation(["-url", "http://example.com", "-status", "ok"])

    def test_bad_tick(self):
        """Test a malformed tick is a configuration error."""
        with pytest.raises(ConfigError):
            config.load_expectation(["-url", "http://example.com", "-tick", "soon"])

    @pytest.mark.parametrize("flag", ["-tick", "-timeout"])
    def test_non_positive_durations(self, flag):
        """Test zero or negative durations are rejected."""
        with pytest.raises(ConfigError, match=flag.lstrip("-")):
            config.load_expectation(["-url", "http://example.com", flag, "0s"])

    @pytest.mark.parametrize("flag", ["-tick", "-timeout"])
    def test_durations_beyond_wait_limit(self, flag):
        """Test durations longer than the platform can wait on are rejected."""
        too_long = f"{threading.TIMEOUT_MAX * 2:.0f}s"
        with pytest.raises(ConfigError, match="at most"):
            config.load_expectation(["-url", "http://example.com", flag, too_long])

    def test_huge_tick_flag(self):
        """Test an out-of-range tick flag is a configuration error."""
        with pytest.raises(ConfigError):
            config.load_expectation(
                ["-url", "http://example.com", "-tick", "99999999999h"]
            )

    def test_unknown_flag(self):
        """Test unknown flags are a configuration error."""
        with pytest.raises(ConfigError):
            config.load_expectation(["-url", "http://example.com", "-bogus", "1"])

    def test_expectation_is_immutable(self):
        """Test the expectation cannot be changed after loading."""
        expectation, _ = config.load_expectation(["-url", "http://example.com"])
        with pytest.raises(dataclasses.FrozenInstanceError):
            expectation.status_code = 500  # type: ignore[misc]

    def test_flag_file(self, temp_dir):
        """Test options from a 'name value' config file."""
        config_file = temp_dir / "watch.conf"
        config_file.write_text(
            "# watch settings\n"
            "url http://example.com\n"
            "\n"
            "server=Apache\n"
            "content-type text/html; charset=utf-8\n"
            "status 301\n"
            "tick 1m\n"
            "verbose\n"
        )

        expectation, settings = config.load_expectation(["-config", str(config_file)])

        assert expectation.url == "http://example.com"
        assert expectation.server == "Apache"
        assert expectation.content_type == "text/html; charset=utf-8"
        assert expectation.status_code == 301
        assert expectation.tick == timedelta(minutes=1)
        assert settings.verbose is True

    def test_json_file(self, temp_dir):
        """Test options from a JSON config file."""
        config_file = temp_dir / "watch.json"
        config_file.write_text(
            json.dumps(
                {
                    "url": "http://example.com",
                    "status": 503,
                    "user_agent": "probe",
                    "tick": "30s",
                    "timeout": 5,
                }
            )
        )

        expectation, _ = config.load_expectation(["--config", str(config_file)])

        assert expectation.status_code == 503
        assert expectation.user_agent == "probe"
        assert expectation.tick == timedelta(seconds=30)
        assert expectation.timeout == timedelta(seconds=5)

    def test_command_line_overrides_file(self, temp_dir):
        """Test flags win over config file values."""
        config_file = temp_dir / "watch.conf"
        config_file.write_text("url http://file.example\nserver nginx\nstatus 404\n")

        expectation, _ = config.load_expectation(
            ["-config", str(config_file), "-url", "http://cli.example"]
        )

        assert expectation.url == "http://cli.example"
        assert expectation.server == "nginx"
        assert expectation.status_code == 404

    def test_missing_file(self, temp_dir):
        """Test a missing config file is a configuration error."""
        with pytest.raises(ConfigError, match="not found"):
            config.load_expectation(["-config", str(temp_dir / "nope.conf")])

    def test_invalid_json(self, temp_dir):
        """Test malformed JSON is a configuration error."""
        config_file = temp_dir / "watch.json"
        config_file.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            config.load_expectation(["-config", str(config_file)])

    def test_json_must_be_object(self, temp_dir):
        """Test a JSON list is rejected."""
        config_file = temp_dir / "watch.json"
        config_file.write_text('["url"]')
        with pytest.raises(ConfigError):
            config.load_expectation(["-config", str(config_file)])

    def test_unknown_file_option(self, temp_dir):
        """Test unknown keys in a config file are rejected."""
        config_file = temp_dir / "watch.conf"
        config_file.write_text("url http://example.com\nretries 3\n")
        with pytest.raises(ConfigError, match="retries"):
            config.load_expectation(["-config", str(config_file)])

    @pytest.mark.parametrize(
        "payload",
        [
            {"url": "http://example.com", "status": "abc"},
            {"url": "http://example.com", "status": 200.5},
            {"url": "http://example.com", "server": 1},
            {"url": "http://example.com", "verbose": "maybe"},
        ],
    )
    def test_badly_typed_file_values(self, temp_dir, payload):
        """Test wrongly typed JSON values are rejected."""
        config_file = temp_dir / "watch.json"
        config_file.write_text(json.dumps(payload))
        with pytest.raises(ConfigError):
            config.load_expectation(["-config", str(config_file)])

    def test_infinite_json_tick(self, temp_dir):
        """Test a JSON number that overflows to infinity is rejected."""
        config_file = temp_dir / "watch.json"
        config_file.write_text('{"url": "http://example.com", "tick": 1e400}')
        with pytest.raises(ConfigError, match="Invalid duration"):
            config.load_expectation(["-config", str(config_file)])

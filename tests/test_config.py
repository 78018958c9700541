"""
Tests for environment-driven configuration.
"""

from config import AppConfig
from qrng.client import DEFAULT_URL


class TestAppConfig:

    def test_defaults(self):
        config = AppConfig()

        assert config.source.url == DEFAULT_URL
        assert config.source.value_field == "data"
        assert config.poll.interval_sec == 5.0
        assert config.poll.max_slots == 20
        assert config.dashboard.port == 8080
        assert config.log_file == ""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("QRNG_URL", "http://localhost:9000/sample")
        monkeypatch.setenv("QRNG_VALUE_FIELD", "value")
        monkeypatch.setenv("QRNG_TIMEOUT_SEC", "2.5")
        monkeypatch.setenv("POLL_INTERVAL_SEC", "0.5")
        monkeypatch.setenv("INITIAL_SLOTS", "7")
        monkeypatch.setenv("MAX_SLOTS", "12")
        monkeypatch.setenv("DASHBOARD_ENABLED", "false")
        monkeypatch.setenv("DASHBOARD_PORT", "9999")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("LOG_FILE", "/tmp/poller.log")

        config = AppConfig.from_env()

        assert config.source.url == "http://localhost:9000/sample"
        assert config.source.value_field == "value"
        assert config.source.request_timeout_sec == 2.5
        assert config.poll.interval_sec == 0.5
        assert config.poll.initial_slots == 7
        assert config.poll.max_slots == 12
        assert config.dashboard.enabled is False
        assert config.dashboard.port == 9999
        assert config.log_level == "DEBUG"
        assert config.log_file == "/tmp/poller.log"

    def test_configs_are_independent(self):
        a, b = AppConfig(), AppConfig()
        a.poll.initial_slots = 12
        assert b.poll.initial_slots == 4

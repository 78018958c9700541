"""
QRNG Slot Poller — Configuration
All tunable parameters in one place.
"""

import os
from dataclasses import dataclass, field

from qrng.client import DEFAULT_URL


@dataclass
class SourceConfig:
    url: str = DEFAULT_URL
    value_field: str = "data"           # JSON field holding the sample
    request_timeout_sec: float = 10.0


@dataclass
class PollConfig:
    interval_sec: float = 5.0           # Delay after a cycle fully settles
    initial_slots: int = 4
    max_slots: int = 20                 # Upper bound for the dashboard slider endpoint


@dataclass
class DashboardConfig:
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class AppConfig:
    source: SourceConfig = field(default_factory=SourceConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    log_level: str = "INFO"
    log_file: str = ""                  # Empty = stdout only

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load config with environment variable overrides."""
        config = cls()
        config.source.url = os.getenv("QRNG_URL", DEFAULT_URL)
        config.source.value_field = os.getenv("QRNG_VALUE_FIELD", "data")
        config.source.request_timeout_sec = float(os.getenv("QRNG_TIMEOUT_SEC", "10"))
        config.poll.interval_sec = float(os.getenv("POLL_INTERVAL_SEC", "5"))
        config.poll.initial_slots = int(os.getenv("INITIAL_SLOTS", "4"))
        config.poll.max_slots = int(os.getenv("MAX_SLOTS", "20"))
        config.dashboard.enabled = os.getenv("DASHBOARD_ENABLED", "true").lower() == "true"
        config.dashboard.host = os.getenv("DASHBOARD_HOST", "0.0.0.0")
        config.dashboard.port = int(os.getenv("DASHBOARD_PORT", "8080"))
        config.log_level = os.getenv("LOG_LEVEL", "INFO")
        config.log_file = os.getenv("LOG_FILE", "")
        return config

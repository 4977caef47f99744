"""Process configuration read from the environment.

Values come from environment variables (a ``.env`` file is loaded by the
server at startup). Durations are in seconds.
"""

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATA_DIR = Path(__file__).parent / "data"


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


@dataclass(frozen=True)
class Settings:
    flows_file: Path = Path("flows.json")
    config_path: Path = DEFAULT_DATA_DIR / "copilot_store.json"
    refresh_interval: float = 30.0
    auto_refresh: bool = False
    request_timeout: float = 30.0
    probe_timeout: float = 5.0
    history_size: int = 50
    usage_history_size: int = 100
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = ("*",)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            flows_file=Path(os.getenv("COPILOT_FLOWS_FILE", "flows.json")),
            config_path=Path(os.getenv("COPILOT_CONFIG_PATH", str(DEFAULT_DATA_DIR / "copilot_store.json"))),
            refresh_interval=_env_float("COPILOT_REFRESH_INTERVAL", 30.0),
            auto_refresh=os.getenv("COPILOT_AUTO_REFRESH", "false").lower() == "true",
            request_timeout=_env_float("COPILOT_REQUEST_TIMEOUT", 30.0),
            probe_timeout=_env_float("COPILOT_PROBE_TIMEOUT", 5.0),
            history_size=_env_int("COPILOT_HISTORY_SIZE", 50),
            usage_history_size=_env_int("COPILOT_USAGE_HISTORY_SIZE", 100),
            log_level=os.getenv("COPILOT_LOG_LEVEL", "INFO").upper(),
            # comma-separated values for multiple origins, or "*" for all (development only)
            cors_origins=tuple(os.getenv("CORS_ORIGINS", "*").split(",")),
        )

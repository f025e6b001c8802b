"""
Configuration management for the parcel tracker.
Handles loading settings from environment variables and config files.
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass
from dotenv import load_dotenv


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class TrackerConfig:
    """Main configuration class for the tracking engine."""

    # === Deadlines ===
    global_deadline: float = 10.0  # seconds for a whole request
    adapter_timeout: float = 4.0  # upper bound for one source attempt
    adapter_budget_fraction: float = 0.8  # share of the remaining budget one attempt may use

    # === Sources ===
    structured_api_url: str = "https://apis.tracker.delivery"
    user_agent: str = DEFAULT_USER_AGENT

    # Synthetic fallback (None = unseeded)
    synthetic_seed: Optional[int] = None

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/parceltrack.log"

    # HTTP server
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "TrackerConfig":
        """Load configuration from environment variables."""

        # Try to load from .env file
        if env_file:
            load_dotenv(env_file)
        else:
            # Try common locations
            for env_path in ["config.env", ".env"]:
                if Path(env_path).exists():
                    load_dotenv(env_path)
                    break

        seed = os.getenv("SYNTHETIC_SEED", "").strip()

        return cls(
            # Deadlines
            global_deadline=float(os.getenv("TRACK_GLOBAL_DEADLINE", "10")),
            adapter_timeout=float(os.getenv("TRACK_ADAPTER_TIMEOUT", "4")),
            adapter_budget_fraction=float(os.getenv("TRACK_ADAPTER_BUDGET_FRACTION", "0.8")),

            # Sources
            structured_api_url=os.getenv("STRUCTURED_API_URL", "https://apis.tracker.delivery"),
            user_agent=os.getenv("TRACK_USER_AGENT") or DEFAULT_USER_AGENT,
            synthetic_seed=int(seed) if seed else None,

            # Logging
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/parceltrack.log"),

            # Server
            server_host=os.getenv("SERVER_HOST", "127.0.0.1"),
            server_port=int(os.getenv("SERVER_PORT", "8000")),
        )

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.global_deadline <= 0:
            errors.append("TRACK_GLOBAL_DEADLINE must be positive")
        if self.adapter_timeout <= 0:
            errors.append("TRACK_ADAPTER_TIMEOUT must be positive")
        if not 0 < self.adapter_budget_fraction < 1:
            errors.append("TRACK_ADAPTER_BUDGET_FRACTION must be between 0 and 1 (exclusive)")
        if not self.structured_api_url.startswith(("http://", "https://")):
            errors.append("STRUCTURED_API_URL must be an http(s) URL")

        return errors


# Global config instance
_config: Optional[TrackerConfig] = None


def get_config() -> TrackerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = TrackerConfig.from_env()
    return _config


def init_config(env_file: Optional[str] = None) -> TrackerConfig:
    """Initialize configuration from environment."""
    global _config
    _config = TrackerConfig.from_env(env_file)
    return _config

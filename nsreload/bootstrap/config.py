"""
bootstrap/config.py - Configuration

Configuration loading from a JSON file, environment variables and
defaults. The dependency core itself takes no configuration; these
settings size the reload session's history and drive setup_logging().
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("NSRELOAD_LOG_LEVEL", "INFO"),
            format=os.getenv("NSRELOAD_LOG_FORMAT", DEFAULT_LOG_FORMAT),
            log_file=os.getenv("NSRELOAD_LOG_FILE"),
            json_logs=os.getenv("NSRELOAD_JSON_LOGS", "false").lower() == "true",
        )


@dataclass
class HistoryConfig:
    """Transition history kept by a ReloadSession."""

    enabled: bool = True
    max_entries: int = 1000

    @classmethod
    def from_env(cls) -> "HistoryConfig":
        return cls(
            enabled=os.getenv("NSRELOAD_HISTORY", "true").lower() == "true",
            max_entries=int(os.getenv("NSRELOAD_HISTORY_MAX", "1000")),
        )


@dataclass
class NsReloadConfig:
    """Root configuration."""

    environment: str = "development"
    debug: bool = False

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)

    # Additional settings
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "NsReloadConfig":
        """Create configuration from environment variables."""
        return cls(
            environment=os.getenv("NSRELOAD_ENVIRONMENT", "development"),
            debug=os.getenv("NSRELOAD_DEBUG", "false").lower() == "true",
            logging=LoggingConfig.from_env(),
            history=HistoryConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "NsReloadConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "NsReloadConfig":
        """Create config from dictionary, on top of the environment."""
        config = cls.from_env()

        if "environment" in data:
            config.environment = data["environment"]
        if "debug" in data:
            config.debug = data["debug"]

        for section in ("logging", "history"):
            target = getattr(config, section)
            for key, value in data.get(section, {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)

        if "settings" in data:
            config.settings.update(data["settings"])

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
            "history": {
                "enabled": self.history.enabled,
                "max_entries": self.history.max_entries,
            },
            "settings": dict(self.settings),
        }


# Global config instance
_config: Optional[NsReloadConfig] = None


def load_config(filepath: str = None) -> NsReloadConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file. When omitted,
            ./nsreload.json and ~/.nsreload/config.json are tried before
            falling back to the environment.

    Returns:
        NsReloadConfig instance
    """
    global _config

    if filepath:
        _config = NsReloadConfig.from_file(filepath)
    else:
        default_paths = [
            "./nsreload.json",
            os.path.expanduser("~/.nsreload/config.json"),
        ]

        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                _config = NsReloadConfig.from_file(path)
                return _config

        _config = NsReloadConfig.from_env()

    logger.info(f"Configuration loaded: environment={_config.environment}")
    return _config


def get_config() -> NsReloadConfig:
    """Get current configuration, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the loaded configuration."""
    global _config
    _config = None

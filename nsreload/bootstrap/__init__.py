"""
bootstrap/ - Configuration and logging setup
"""

from .config import (
    NsReloadConfig,
    LoggingConfig,
    HistoryConfig,
    load_config,
    get_config,
    reset_config,
)

from .logs import (
    JSONFormatter,
    setup_logging,
    setup_logging_from_config,
)

__all__ = [
    # Config
    "NsReloadConfig",
    "LoggingConfig",
    "HistoryConfig",
    "load_config",
    "get_config",
    "reset_config",
    # Logging
    "JSONFormatter",
    "setup_logging",
    "setup_logging_from_config",
]

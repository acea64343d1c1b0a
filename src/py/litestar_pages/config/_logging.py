"""Console logging configuration."""

import os
from dataclasses import dataclass, field
from typing import Literal

from litestar_pages.config._constants import LOG_LEVEL_ENV

__all__ = ("LoggingConfig", "get_default_log_level")


def get_default_log_level() -> "Literal['quiet', 'normal', 'verbose']":
    """Get default log level from environment variable.

    Checks LITESTAR_PAGES_LOG_LEVEL environment variable.
    Falls back to "normal" if not set or invalid.

    Returns:
        The log level from environment or "normal" default.
    """
    env_level = os.getenv(LOG_LEVEL_ENV, "").lower()
    match env_level:
        case "quiet" | "normal" | "verbose":
            return env_level
        case _:
            return "normal"


@dataclass
class LoggingConfig:
    """Logging configuration for console output.

    Attributes:
        level: Logging verbosity level.
            - "quiet": Minimal output (warnings and errors only)
            - "normal": Standard operational messages (default)
            - "verbose": Per-entry build and render details
            Can also be set via LITESTAR_PAGES_LOG_LEVEL environment variable.
    """

    level: "Literal['quiet', 'normal', 'verbose']" = field(default_factory=get_default_log_level)

    @property
    def is_quiet(self) -> bool:
        return self.level == "quiet"

    @property
    def is_verbose(self) -> bool:
        return self.level == "verbose"

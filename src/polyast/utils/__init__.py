"""polyast utility modules.

- logging: Standardized logging with human/verbose/JSON modes
- serialization: Stack-based JSON output for deep trees
"""

from polyast.utils.logging import LogMode, configure_from_cli, get_logger, setup_logging
from polyast.utils.serialization import dumps_json

__all__ = [
    "LogMode",
    "configure_from_cli",
    "dumps_json",
    "get_logger",
    "setup_logging",
]

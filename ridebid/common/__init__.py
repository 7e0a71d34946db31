# ridebid/common/__init__.py
"""
Общие утилиты, константы, исключения и логгер.
"""

from ridebid.common.logger import get_logger, log_info, log_error, log_warning, log_debug, setup_logging
from ridebid.common.constants import TypeMsg

__all__ = [
    "get_logger",
    "log_info",
    "log_error",
    "log_warning",
    "log_debug",
    "setup_logging",
    "TypeMsg",
]

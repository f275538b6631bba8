"""
Structured logging for deposit-listener.

JSON logs with timestamp, level, logger name and event_type. Use make_logger()
to build a component logger at an explicit verbosity; get_logger() for the
module-level default.
"""

from deposit_listener.deposit_logging.logger import (
    bind_target,
    get_logger,
    make_logger,
    resolve_level,
)

__all__ = ["bind_target", "get_logger", "make_logger", "resolve_level"]

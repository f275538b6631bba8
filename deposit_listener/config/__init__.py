"""
Configuration management for the deposit listener.

Loads settings from environment variables and an optional .env file and
exposes MonitorConfig as the single source of truth for a monitor.
"""

from deposit_listener.config.settings import (  # noqa: F401
    EVM_TX_MESSAGE_TYPE,
    MonitorConfig,
    get_settings,
)

__all__ = ["EVM_TX_MESSAGE_TYPE", "MonitorConfig", "get_settings"]

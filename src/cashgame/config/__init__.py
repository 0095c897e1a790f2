"""Configuration module for the cash game ledger."""

from cashgame.config.logging import configure_logging, get_logger, session_context
from cashgame.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "configure_logging", "get_logger", "session_context"]

"""
Core utilities and configuration for Agent Timeline.

This package provides core functionality including logging configuration,
monitoring hooks and database setup.
"""

from agent_timeline.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]

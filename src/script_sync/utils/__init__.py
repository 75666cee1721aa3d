"""Utility modules for Script Sync."""

from script_sync.utils.logger import get_logger, operation_scope, setup_logging

__all__ = ["setup_logging", "get_logger", "operation_scope"]

"""
Convenience accessors for the structured logging facility.

Usage:
    from orm_behaviors.utils.logging_utils import get_logger
    log = get_logger("listeners")
    log.info("position shifted", extra={"model": "Item"})
"""

from .manager import (
    ContextAwareFormatter,
    LogCategory,
    LoggerManager,
    clear_log,
    clear_log_context,
    get_log_context,
    get_logger,
    init_logger,
    log_context,
    logger_manager,
    register_category,
    shutdown_logger,
    update_log_context,
)

__all__ = [
    "ContextAwareFormatter",
    "LogCategory",
    "LoggerManager",
    "get_logger",
    "get_log_context",
    "update_log_context",
    "clear_log_context",
    "log_context",
    "init_logger",
    "logger_manager",
    "register_category",
    "clear_log",
    "shutdown_logger",
]

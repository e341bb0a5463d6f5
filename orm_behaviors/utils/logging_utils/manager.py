from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from flask import Flask, current_app


_CORE_LOG_RECORD_FIELDS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}

_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def _resolve_app() -> Optional[Flask]:
    try:
        return current_app._get_current_object()  # type: ignore[attr-defined]
    except RuntimeError:
        return None


def get_log_context() -> Dict[str, Any]:
    """Return a shallow copy of the active contextual logging fields."""

    return dict(_log_context.get())


def update_log_context(**fields: Any) -> None:
    """Merge additional fields into the active contextual logging fields."""

    current = dict(_log_context.get())
    for key, value in fields.items():
        if value is None:
            current.pop(key, None)
        else:
            current[key] = value
    _log_context.set(current)


def clear_log_context(*keys: str) -> None:
    """Clear specific contextual keys, or all if none provided."""

    if not keys:
        _log_context.set({})
        return
    current = dict(_log_context.get())
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


@contextmanager
def log_context(**fields: Any):
    """Context manager that temporarily adds contextual logging fields."""

    updated = dict(_log_context.get())
    updated.update({k: v for k, v in fields.items() if v is not None})
    token = _log_context.set(updated)
    try:
        yield
    finally:
        _log_context.reset(token)


class ContextAwareFormatter(logging.Formatter):
    """Formatter that can emit JSON or text logs enriched with contextual fields."""

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        *,
        json_format: bool = False,
    ) -> None:
        super().__init__(fmt=fmt or "[%(asctime)s] %(levelname)s %(name)s - %(message)s", datefmt=datefmt)
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        if self.json_format:
            return self._format_json(record)

        base = super().format(record)
        context = _log_context.get()
        if context:
            ctx = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
            base = f"{base} | {ctx}"
        return base

    def _format_json(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _CORE_LOG_RECORD_FIELDS or key.startswith("_") or key in payload:
                continue
            payload[key] = value

        context = _log_context.get()
        if context:
            payload.setdefault("context", {}).update(context)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, separators=(",", ":"))


@dataclass(frozen=True)
class LogCategory:
    """Logical logging category backed by its own file."""

    name: str
    filename: str


DEFAULT_CATEGORIES: Dict[str, LogCategory] = {
    "listeners": LogCategory("listeners", "listeners.log"),
    "metadata": LogCategory("metadata", "metadata.log"),
    "query": LogCategory("query", "query.log"),
    "cli": LogCategory("cli", "cli.log"),
    "app": LogCategory("app", "application.log"),
}


class LoggerManager:
    """
    Hands out one logger per category, each writing to its own rotating file
    and optionally to a shared console handler.
    """

    def __init__(
        self,
        *,
        base_dir: Optional[str] = None,
        rotation_when: str = "midnight",
        backup_count: int = 7,
        categories: Optional[Dict[str, LogCategory]] = None,
        enable_category_files: bool = True,
        default_level: int = logging.INFO,
        category_levels: Optional[Dict[str, int]] = None,
        enable_console: bool = True,
        json_format: bool = False,
        text_format: Optional[str] = None,
    ) -> None:
        self._base_dir = base_dir
        self._rotation_when = rotation_when
        self._backup_count = backup_count
        self._categories = (categories or DEFAULT_CATEGORIES).copy()
        self._enable_category_files = enable_category_files
        self._default_level = default_level
        self._category_levels = {k.lower(): v for k, v in (category_levels or {}).items()}
        self._enable_console = enable_console
        self._json_format = json_format
        self._text_format = text_format
        self._loggers: Dict[str, logging.Logger] = {}
        self._console_handler: Optional[logging.Handler] = None

    @property
    def base_dir(self) -> Path:
        if self._base_dir:
            return Path(self._base_dir)
        app = _resolve_app()
        if app:
            cfg_dir = app.config.get("LOGGING_BASE_DIR")
            if cfg_dir:
                return Path(cfg_dir)
        return Path(os.getenv("LOGGING_BASE_DIR", "/tmp/orm_behaviors/logs"))

    @property
    def categories(self) -> Dict[str, LogCategory]:
        return dict(self._categories)

    def register_category(self, name: str, filename: Optional[str] = None) -> LogCategory:
        """Register a new logging category (idempotent)."""

        key = name.strip().lower()
        spec = LogCategory(key, filename or f"{key}.log")
        existing = self._categories.get(key)
        if existing and existing.filename != spec.filename:
            self._detach_logger(key)
        self._categories[key] = spec
        return spec

    def get_logger(self, category: str) -> logging.Logger:
        category_key = category.lower()
        if category_key in self._loggers:
            return self._loggers[category_key]

        spec = self._categories.get(category_key)
        if spec is None:
            spec = self.register_category(category)

        logger = logging.getLogger(f"orm_behaviors.{spec.name}")
        logger.setLevel(self._category_levels.get(category_key, self._default_level))

        if self._enable_category_files:
            log_dir = self.base_dir
            log_dir.mkdir(parents=True, exist_ok=True)
            handler = TimedRotatingFileHandler(
                log_dir / spec.filename,
                when=self._rotation_when,
                backupCount=self._backup_count,
                encoding="utf-8",
                utc=True,
            )
            handler.setFormatter(self._build_formatter())
            logger.addHandler(handler)

        if self._enable_console:
            console_handler = self._ensure_console_handler()
            if console_handler not in logger.handlers:
                logger.addHandler(console_handler)

        self._loggers[category_key] = logger
        return logger

    def _build_formatter(self) -> ContextAwareFormatter:
        return ContextAwareFormatter(fmt=self._text_format, json_format=self._json_format)

    def _ensure_console_handler(self) -> logging.Handler:
        if self._console_handler is None:
            handler = logging.StreamHandler()
            handler.setLevel(self._default_level)
            handler.setFormatter(self._build_formatter())
            self._console_handler = handler
        return self._console_handler

    def _iter_log_files(self, categories: Optional[Iterable[str]] = None) -> List[Path]:
        log_dir = self.base_dir
        if not log_dir.exists():
            return []

        if categories is None:
            return sorted(log_dir.glob("*.log*"))

        matched: List[Path] = []
        for category in categories:
            spec = self._categories.get(category.lower())
            if spec is None:
                continue
            matched.extend(sorted(log_dir.glob(f"{spec.filename}*")))
        return matched

    def clear_log(self, category: str) -> List[Path]:
        self._detach_logger(category.lower())

        deleted: List[Path] = []
        for path in self._iter_log_files([category]):
            try:
                path.unlink()
                deleted.append(path)
            except FileNotFoundError:
                continue
        return deleted

    def shutdown(self) -> None:
        for key in list(self._loggers.keys()):
            self._detach_logger(key)
        if self._console_handler:
            self._console_handler.close()
            self._console_handler = None

    def _detach_logger(self, category_key: str) -> None:
        logger = self._loggers.pop(category_key, None)
        if not logger:
            return
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def _to_bool(value: Optional[Any], *, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


def _to_level(value: Optional[Any], *, default: int = logging.INFO) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        numeric = getattr(logging, value.strip().upper(), None)
        if isinstance(numeric, int):
            return numeric
    return default


_manager: Optional[LoggerManager] = None


def init_logger(app: Flask) -> LoggerManager:
    """
    Configure the shared logger manager from the Flask application's config.

    Loggers handed out before this call keep their identity; their handlers
    are rebuilt with the new settings.
    """

    global _manager

    previous = list(_manager._loggers) if _manager is not None else []

    category_levels_cfg = app.config.get("LOGGING_CATEGORY_LEVELS") or {}
    category_levels = {
        str(name).strip().lower(): _to_level(level)
        for name, level in category_levels_cfg.items()
    }

    manager = LoggerManager(
        base_dir=app.config.get("LOGGING_BASE_DIR"),
        rotation_when=app.config.get("LOGGING_ROTATION_WHEN", "midnight"),
        backup_count=int(app.config.get("LOGGING_ROTATION_BACKUP_COUNT", 7)),
        enable_category_files=_to_bool(app.config.get("LOGGING_ENABLE_CATEGORY_FILES", True), default=True),
        default_level=_to_level(app.config.get("LOG_LEVEL")),
        category_levels=category_levels,
        enable_console=_to_bool(app.config.get("LOGGING_CONSOLE_ENABLED", True), default=True),
        json_format=_to_bool(app.config.get("LOGGING_JSON_FORMAT", False)),
        text_format=app.config.get("LOGGING_TEXT_FORMAT"),
    )

    shutdown_logger()
    _manager = manager
    for category in previous:
        manager.get_logger(category)
    return _manager


def logger_manager() -> LoggerManager:
    global _manager
    if _manager is None:
        _manager = LoggerManager(
            rotation_when=os.getenv("LOGGING_ROTATION_WHEN", "midnight"),
            enable_category_files=_to_bool(os.getenv("LOGGING_ENABLE_CATEGORY_FILES", "true"), default=True),
            default_level=_to_level(os.getenv("LOGGING_DEFAULT_LEVEL")),
            enable_console=_to_bool(os.getenv("LOGGING_CONSOLE_ENABLED", "true"), default=True),
            json_format=_to_bool(os.getenv("LOGGING_JSON_FORMAT")),
            text_format=os.getenv("LOGGING_TEXT_FORMAT"),
        )
    return _manager


def shutdown_logger() -> None:
    global _manager
    if _manager is None:
        return
    _manager.shutdown()
    _manager = None


def get_logger(category: str) -> logging.Logger:
    return logger_manager().get_logger(category)


def clear_log(category: str) -> List[Path]:
    return logger_manager().clear_log(category)


def register_category(name: str, filename: Optional[str] = None) -> LogCategory:
    return logger_manager().register_category(name, filename=filename)

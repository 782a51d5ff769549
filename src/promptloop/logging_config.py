# src/promptloop/logging_config.py
"""
Logging setup for applications built on promptloop.

Library modules only create loggers (``logging.getLogger(__name__)``);
handlers are installed by the application through :func:`configure_logging`.
The ``[logging]`` section of the promptloop configuration controls:

- a console handler on stderr, quiet by default: it passes only records
  logged with ``extra={"display": True}`` (see :func:`log_display`) unless
  ``console_enabled`` is true
- an optional file handler, one timestamped file per run or a single
  rotating file
- per-logger levels under ``components``

Usage:
    from promptloop.logging_config import configure_logging, log_display

    configure_logging(app_name="summarizer")
    log_display(logger, logging.INFO, "Loop settled after %d iterations", n)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, Union

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": False,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/promptloop/logs",
    "file_mode": "per_run",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-28s - %(message)s",
    "rotation_max_bytes": 5 * 1024 * 1024,
    "rotation_backup_count": 3,
    "display_min_level": "INFO",
    "components": {
        "promptloop": "INFO",
        "asyncio": "WARNING",
        "aiofiles": "WARNING",
    },
}


def _level(value: Union[str, int, None], fallback: int) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        level = logging.getLevelName(value.upper())
        if isinstance(level, int):
            return level
    return fallback


class DisplayFilter(logging.Filter):
    """
    Gate for the console handler.

    With the console enabled every record passes and the handler level
    decides. Otherwise only records flagged ``display=True`` at or above
    ``display_min_level`` pass.
    """

    def __init__(self, console_enabled: bool = False, display_min_level: int = logging.INFO) -> None:
        super().__init__()
        self.console_enabled = console_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


class LoggingManager:
    """Process-wide logging state. Configuration happens once unless forced."""

    _instance: Optional["LoggingManager"] = None
    _configured: bool = False
    _log_file_path: Optional[Path] = None
    _console_handler: Optional[logging.Handler] = None
    _file_handler: Optional[logging.Handler] = None

    @classmethod
    def get_instance(cls) -> "LoggingManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def reset(cls) -> None:
        """Remove installed handlers and forget the configuration."""
        root_logger = logging.getLogger()
        for handler in (cls._console_handler, cls._file_handler):
            if handler is not None:
                root_logger.removeHandler(handler)
                handler.close()
        cls._configured = False
        cls._log_file_path = None
        cls._console_handler = None
        cls._file_handler = None

    def configure(
        self,
        app_name: str = "promptloop",
        config: Optional[dict[str, Any]] = None,
        config_file_path: Optional[Union[str, Path]] = None,
        force_reconfigure: bool = False,
    ) -> Optional[Path]:
        """
        Install console and file handlers on the root logger.

        Args:
            app_name: Used in log file names.
            config: Logging section; read through ``load_config`` when omitted.
            config_file_path: TOML file passed to ``load_config``.
            force_reconfigure: Replace an existing configuration.

        Returns:
            The log file path, or None when file logging is disabled.
        """
        cls = type(self)
        if cls._configured and not force_reconfigure:
            return cls._log_file_path
        cls.reset()

        log_config = self._resolve_config(config, config_file_path)
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)

        console_enabled = bool(log_config.get("console_enabled", False))
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(
            _level(log_config.get("console_level"), logging.WARNING) if console_enabled else logging.DEBUG
        )
        console.setFormatter(logging.Formatter(log_config["console_format"]))
        console.addFilter(DisplayFilter(
            console_enabled=console_enabled,
            display_min_level=_level(log_config.get("display_min_level"), logging.INFO),
        ))
        root_logger.addHandler(console)
        cls._console_handler = console

        if log_config.get("file_enabled", False):
            cls._file_handler, cls._log_file_path = self._create_file_handler(log_config, app_name)
            if cls._file_handler is not None:
                root_logger.addHandler(cls._file_handler)

        for component, level in log_config.get("components", {}).items():
            logging.getLogger(component).setLevel(_level(level, logging.INFO))

        cls._configured = True
        logging.getLogger(__name__).debug(f"Logging configured (log file: {cls._log_file_path})")
        return cls._log_file_path

    @staticmethod
    def _resolve_config(
        config: Optional[dict[str, Any]], config_file_path: Optional[Union[str, Path]]
    ) -> dict[str, Any]:
        if config is None:
            from .config.loader import load_config

            config = load_config(config_path=config_file_path).logging
        merged = {**DEFAULT_LOGGING_CONFIG, **config}
        merged["components"] = {**DEFAULT_LOGGING_CONFIG["components"], **config.get("components", {})}
        return merged

    @staticmethod
    def _create_file_handler(
        config: dict[str, Any], app_name: str
    ) -> tuple[Optional[logging.Handler], Optional[Path]]:
        """Create a per-run FileHandler or, with ``file_mode = "single"``, a RotatingFileHandler."""
        log_dir = Path(os.path.expanduser(config["file_directory"]))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            if config.get("file_mode") == "single":
                path = log_dir / config["file_single_name"].format(app=app_name)
                handler: logging.Handler = RotatingFileHandler(
                    path,
                    maxBytes=config["rotation_max_bytes"],
                    backupCount=config["rotation_backup_count"],
                    encoding="utf-8",
                )
            else:
                path = log_dir / config["file_name_pattern"].format(app=app_name, timestamp=datetime.now())
                handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"Warning: file logging disabled, cannot open log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_level(config.get("file_level"), logging.DEBUG))
        handler.setFormatter(logging.Formatter(config["file_format"]))
        return handler, path

    def set_console_level(self, level: Union[str, int]) -> None:
        if self._console_handler is not None:
            self._console_handler.setLevel(_level(level, logging.WARNING))

    def set_component_level(self, component: str, level: Union[str, int]) -> None:
        logging.getLogger(component).setLevel(_level(level, logging.INFO))


def configure_logging(
    app_name: str = "promptloop",
    config: Optional[dict[str, Any]] = None,
    config_file_path: Optional[Union[str, Path]] = None,
    force_reconfigure: bool = False,
) -> Optional[Path]:
    """Configure logging for the application. See :meth:`LoggingManager.configure`."""
    return LoggingManager.get_instance().configure(
        app_name=app_name,
        config=config,
        config_file_path=config_file_path,
        force_reconfigure=force_reconfigure,
    )


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
    """Log ``msg`` with ``display=True`` so it reaches the console even in quiet mode."""
    extra = dict(kwargs.pop("extra", None) or {})
    extra["display"] = True
    logger.log(level, msg, *args, extra=extra, **kwargs)


def get_log_file_path() -> Optional[Path]:
    return LoggingManager._log_file_path

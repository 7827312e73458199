"""
Flint - Logging Utility

Every module gets its logger through ``get_logger(__name__)``. Messages can
carry a metadata dict, rendered as indented JSON under the message, and
error calls take the exception itself so its type, message and traceback
end up in that metadata. Handlers are configured once per process, from the
``logging:`` section of ``config/development.yaml`` when it exists.
"""

import json
import logging
import os
import sys
import time
import traceback
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_CYAN = "\033[36m"

# level -> (color, indicator)
_LEVEL_STYLES: Dict[int, Tuple[str, str]] = {
    logging.DEBUG: ("\033[90m", "🔍"),
    logging.INFO: ("\033[34m", "ℹ️ "),
    logging.WARNING: ("\033[33m", "⚠️ "),
    logging.ERROR: ("\033[31m", "❌"),
}
SUCCESS_MARK = "✅"
TIMER_MARK = "⏱️ "


class ConsoleFormatter(logging.Formatter):
    """Formatter for terminals: dim timestamp, colored level and cyan logger name."""

    def __init__(self, use_colors: bool = True, fmt: str = DEFAULT_FORMAT):
        super().__init__(fmt=fmt, datefmt=DATE_FORMAT)
        self.use_colors = use_colors
        self._plain_fmt = fmt
        self._colored_fmt = f"{_DIM}%(asctime)s{_RESET} " + fmt.replace("%(asctime)s - ", "")

    def format(self, record):
        if not self.use_colors:
            return super().format(record)

        # A copy, so a file handler sharing the record writes it uncolored
        record = logging.makeLogRecord(record.__dict__)
        color, indicator = _LEVEL_STYLES.get(record.levelno, ("", ""))
        record.levelname = f"{indicator} {color}{_BOLD}[{record.levelname}]{_RESET}"
        record.name = f"{_CYAN}{record.name}{_RESET}"
        self._style._fmt = self._colored_fmt
        try:
            return super().format(record)
        finally:
            self._style._fmt = self._plain_fmt


def describe_error(error: BaseException, with_traceback: bool = True) -> Dict[str, Any]:
    """Metadata entry describing an exception."""
    described = {"type": type(error).__name__, "message": str(error)}
    if with_traceback:
        described["traceback"] = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
    return described


class Logger:
    """
    Thin wrapper over a stdlib logger.

    Adds metadata rendering, exception capture, a message prefix for scoped
    loggers and named timers.
    """

    def __init__(self, logger: logging.Logger, prefix: str = ""):
        self._logger = logger
        self._prefix = prefix
        self._timers: Dict[str, float] = {}

    @property
    def name(self) -> str:
        return self._logger.name

    def _emit(self, level: int, message: str, metadata: Optional[Dict[str, Any]] = None):
        if not self._logger.isEnabledFor(level):
            return
        text = self._prefix + message
        if metadata:
            try:
                text += "\n" + json.dumps(metadata, indent=2, default=str)
            except (TypeError, ValueError):
                text += f"\n{metadata}"
        self._logger.log(level, text)

    def debug(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        self._emit(logging.DEBUG, message, metadata)

    def info(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        self._emit(logging.INFO, message, metadata)

    def success(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        self._emit(logging.INFO, f"{SUCCESS_MARK} {message}", metadata)

    def warn(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        self._emit(logging.WARNING, message, metadata)

    warning = warn

    def error(
        self,
        message: str,
        error: Optional[BaseException] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """Log an error, attaching ``error`` under the "error" metadata key."""
        metadata = dict(metadata or {})
        if error is not None:
            metadata["error"] = describe_error(error, FlintLogger.stack_traces)
        self._emit(logging.ERROR, message, metadata)

    def time(self, label: str):
        """Start the timer ``label``."""
        self._timers[label] = time.perf_counter()

    def timeEnd(self, label: str) -> Optional[float]:
        """Stop the timer ``label``, log its duration and return it in seconds."""
        started = self._timers.pop(label, None)
        if started is None:
            self.warn(f"Timer '{label}' was never started")
            return None

        elapsed = time.perf_counter() - started
        self.debug(f"{TIMER_MARK}{label}: {elapsed * 1000:.2f}ms")
        return elapsed

    def scope(self, name: str) -> "Logger":
        """Logger writing to the same handlers with a ``[name]`` prefix."""
        return Logger(self._logger, prefix=f"{self._prefix}[{name}] ")


class FlintLogger:
    """Process-wide handler configuration shared by every Flint logger."""

    _loggers: Dict[str, logging.Logger] = {}
    _handlers: Tuple[logging.Handler, ...] = ()
    _level = logging.INFO
    _file_handler: Optional[logging.Handler] = None
    stack_traces = True

    @classmethod
    def configure(
        cls,
        level: str = "INFO",
        log_format: Optional[str] = None,
        log_file: Optional[str] = None,
        console_output: bool = True,
        use_colors: bool = True,
        stack_traces: bool = True,
    ):
        """
        Replace the handlers of every Flint logger.

        Args:
            level: Level name; ``FLINT_LOG_LEVEL`` in the environment wins
            log_format: Format string, DEFAULT_FORMAT when omitted
            log_file: Also write plain, uncolored records to this file
            console_output: Write to stderr
            use_colors: Color console output when stderr is a terminal
            stack_traces: Include tracebacks in logged errors
        """
        level = os.environ.get("FLINT_LOG_LEVEL", level)
        cls._level = getattr(logging, str(level).upper(), logging.INFO)
        cls.stack_traces = stack_traces
        fmt = log_format or DEFAULT_FORMAT

        handlers = []
        if console_output:
            console = logging.StreamHandler(sys.stderr)
            console.setFormatter(ConsoleFormatter(use_colors and sys.stderr.isatty(), fmt))
            handlers.append(console)

        cls._file_handler = None
        if log_file:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            cls._file_handler = logging.FileHandler(path, encoding="utf-8")
            cls._file_handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DATE_FORMAT))
            handlers.append(cls._file_handler)

        for handler in handlers:
            handler.setLevel(cls._level)
        cls._handlers = tuple(handlers)

        for logger in cls._loggers.values():
            cls._attach(logger)

    @classmethod
    def configure_from_yaml(cls, config_path: str):
        """Configure from the ``logging:`` section of a YAML file, if it exists."""
        path = Path(config_path)
        if not path.exists():
            cls.configure()
            return

        with open(path, "r", encoding="utf-8") as f:
            section = (yaml.safe_load(f) or {}).get("logging") or {}

        cls.configure(
            level=section.get("level", "INFO"),
            log_format=section.get("format"),
            log_file=section.get("file"),
            use_colors=section.get("use_colors", True),
            stack_traces=section.get("enable_stack_trace", True),
        )

    @classmethod
    def _attach(cls, logger: logging.Logger):
        logger.handlers[:] = cls._handlers
        logger.setLevel(cls._level)
        logger.propagate = False

    @classmethod
    def get_logger(cls, name: str) -> Logger:
        logger = cls._loggers.get(name)
        if logger is None:
            logger = logging.getLogger(name)
            cls._attach(logger)
            cls._loggers[name] = logger
        return Logger(logger)


def get_logger(name: str) -> Logger:
    """
    Get the Flint logger for a module.

    Examples
    --------
    >>> logger = get_logger(__name__)
    >>> logger.info("Assembled context", {"cursor": 42})
    >>> logger.error("Store write failed", error=exc)
    """
    return FlintLogger.get_logger(name)


FlintLogger.configure_from_yaml(
    str(Path(__file__).resolve().parent.parent.parent / "config" / "development.yaml")
)

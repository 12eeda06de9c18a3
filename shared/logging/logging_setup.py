import logging
import logging.config
import os
from datetime import datetime
from logging import Logger

from pytz import timezone

_ANSI_RESET = "\033[0m"
_ANSI_CODES = {"red": 31, "green": 32, "yellow": 33, "blue": 34, "magenta": 35, "cyan": 36, "white": 37}

# third-party loggers that are only interesting when debugging
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite", "asyncio")


def _resolve_level(log_level: str | None = None) -> int:
    name = (log_level or os.getenv("LOG_LEVEL", "info")).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


class CustomFormatter(logging.Formatter):
    """Formats timestamps in the configured timezone and prefixes warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        message = record.getMessage()
        if record.levelno >= logging.ERROR:
            message = "⛔ " + message
        elif record.levelno == logging.WARNING:
            message = "⚠️ " + message
        # work on a copy, the same record is shared by every handler
        record = logging.makeLogRecord({**record.__dict__, "msg": message, "args": ()})
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter that wraps the line in the ANSI color named by ``record.color``."""

    def format(self, record) -> str:
        line = super().format(record)
        code = _ANSI_CODES.get(getattr(record, "color", None) or "")
        if code is None:
            return line
        return f"\033[{code}m{line}{_ANSI_RESET}"


class ColorLogger:
    """Wraps a :class:`logging.Logger` so every log call accepts ``color=<name>``.

    The color travels on the record as ``extra["color"]`` and only the console
    formatter renders it. Anything not defined here is looked up on the wrapped logger.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _emit(self, level: int, msg, args: tuple, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.CRITICAL, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._emit(level, msg, args, color, kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def setup_logging(log_level: str | None = None, log_to_file: bool = True) -> ColorLogger:
    """Configure the root logger and return the application logger.

    Args:
        log_level (str | None): Level name, defaults to $LOG_LEVEL (info).
        log_to_file (bool): Also write plain text to $ROOT_DIR/logs/app.log.

    Returns:
        ColorLogger: The "salesbot" logger wrapped for colored console output.
    """
    level = _resolve_level(log_level)
    tz_name = os.getenv("TIMEZONE", "Europe/Madrid")
    fmt = "%(asctime)s - %(levelname)s - %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "level": level,
            "stream": "ext://sys.stdout",
        },
    }
    if log_to_file:
        log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "level": level,
            "filename": os.path.join(log_dir, "app.log"),
            "encoding": "utf-8",
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"()": CustomFormatter, "format": fmt, "datefmt": datefmt, "tz_name": tz_name},
            "colored": {"()": ColoredFormatter, "format": fmt, "datefmt": datefmt, "tz_name": tz_name},
        },
        "handlers": handlers,
        "root": {"handlers": list(handlers), "level": level},
    })

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger("salesbot"))

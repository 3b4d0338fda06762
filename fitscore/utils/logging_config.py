"""
Centralized Logging Configuration for the Score Analysis API
"""
import functools
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-36s | %(funcName)-20s:%(lineno)-4d | %(message)s",
    "json": '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
            '"line": %(lineno)d, "message": "%(message)s"}',
}

# environment -> (level or None for LOG_LEVEL, file logging, format)
ENVIRONMENT_PROFILES = {
    "production": (None, True, "detailed"),
    "development": ("DEBUG", True, "detailed"),
    "testing": ("WARNING", False, "simple"),
}

ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_BACKUPS = 5


def _rotating_handler(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "main",
        "filename": str(path),
        "maxBytes": ROTATE_BYTES,
        "backupCount": ROTATE_BACKUPS,
        "encoding": "utf8",
    }


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed"
) -> None:
    """
    Configure the ``fitscore`` logger tree and uvicorn's loggers.

    Args:
        level: Logging level for application loggers
        log_file: Path of the main log file (defaults to $LOG_DIR/fitscore_<date>.log)
        enable_console: Log to stdout
        enable_file: Log to a rotating file plus a separate error file
        format_style: One of 'simple', 'detailed', 'json'
    """
    handlers: Dict[str, Any] = {}
    app_handlers, server_handlers = [], []

    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "main",
            "stream": "ext://sys.stdout",
        }
        app_handlers.append("console")
        server_handlers.append("console")

    if enable_file:
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d")
        log_file = Path(log_file) if log_file else log_dir / f"fitscore_{stamp}.log"

        handlers["file"] = _rotating_handler(log_file, level)
        handlers["error_file"] = _rotating_handler(log_dir / f"fitscore_errors_{stamp}.log", "ERROR")
        app_handlers += ["file", "error_file"]
        server_handlers.append("file")

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "main": {"format": FORMATS.get(format_style, FORMATS["detailed"]), "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": handlers,
        "loggers": {
            "fitscore": {"level": level, "handlers": app_handlers, "propagate": True},
            "uvicorn": {"level": "INFO", "handlers": server_handlers, "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": list(server_handlers), "propagate": False},
            # pdfminer is very chatty on malformed documents
            "pdfminer": {"level": "ERROR", "handlers": [], "propagate": True},
        },
    })

    logging.getLogger("fitscore.logging").info(
        f"Logging configured - Level: {level}, Console: {enable_console}, File: {log_file if enable_file else 'off'}"
    )


def get_logger(name: str) -> logging.Logger:
    """Logger namespaced under ``fitscore`` (module ``__name__`` values already are)"""
    if name == "fitscore" or name.startswith("fitscore."):
        return logging.getLogger(name)
    return logging.getLogger(f"fitscore.{name}")


def configure_for_environment():
    """Configure logging from ENVIRONMENT and LOG_LEVEL"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    level, enable_file, format_style = ENVIRONMENT_PROFILES.get(environment, (None, True, "detailed"))
    setup_logging(level=level or log_level, enable_file=enable_file, format_style=format_style)


def log_api_call(operation: str):
    """Decorator for async endpoints: logs start, duration and failures of ``operation``"""
    def decorator(func):
        logger = get_logger(f"api.{func.__module__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            started = time.perf_counter()
            logger.info(f"API {operation} started")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = time.perf_counter() - started
                logger.error(f"API {operation} failed after {elapsed:.3f}s: {e}",
                             extra={"execution_time": elapsed, "error": str(e)})
                raise
            elapsed = time.perf_counter() - started
            logger.info(f"API {operation} completed in {elapsed:.3f}s", extra={"execution_time": elapsed})
            return result

        return wrapper
    return decorator


class PerformanceMonitor:
    """
    Times a block and logs the result; ``elapsed_ms`` is available after exit.

    Blocks slower than ``threshold_ms`` are logged as warnings.
    """

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.start_time = None
        self.elapsed_ms = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.debug(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.debug(f"{self.operation_name} aborted after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(f"{self.operation_name} took {self.elapsed_ms:.2f}ms "
                                f"(threshold {self.threshold_ms}ms)")
        else:
            self.logger.info(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")

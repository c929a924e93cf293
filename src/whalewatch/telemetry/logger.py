"""
Queue-backed logging for the watcher process.

Records are handed to a QueueHandler on the event loop thread and
written to the console (and optionally a file) by a listener thread,
so a slow terminal never delays a balance check or a submission.
"""

import logging
import sys
from datetime import UTC, datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import Queue

from whalewatch.config.constants import LOG_DATE_FORMAT, LOG_FORMAT, MAX_LOG_QUEUE_SIZE


# Loggers of libraries that are chatty at INFO
QUIET_LOGGERS = ("aiohttp", "asyncio", "httpx", "httpcore", "uvicorn.access", "solana")


class UTCFormatter(logging.Formatter):
    """Formats record times in UTC with microseconds."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        return f"{created.strftime(datefmt or LOG_DATE_FORMAT)}.{created.microsecond:06d}Z"


def build_handlers(level: int, log_file: Path | None = None) -> list[logging.Handler]:
    """
    Create the output handlers behind the queue.

    The console honours `level`; the file, when given, receives
    every record down to DEBUG.
    """
    formatter = UTCFormatter(LOG_FORMAT, LOG_DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    return handlers


class AsyncLogger:
    """
    Owns the queue, its handler and the listener thread.

    Usable as a context manager; stop() drains pending records.
    """

    def __init__(
        self,
        name: str,
        level: int = logging.INFO,
        log_file: Path | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._level = level
        self._log_file = log_file
        self._queue: Queue[logging.LogRecord] = Queue(maxsize=MAX_LOG_QUEUE_SIZE)
        self._handler: QueueHandler | None = None
        self._listener: QueueListener | None = None

    @property
    def logger(self) -> logging.Logger:
        """The package logger records are routed from."""
        return self._logger

    @property
    def is_running(self) -> bool:
        return self._listener is not None

    def start(self) -> None:
        if self._listener is not None:
            return

        self._handler = QueueHandler(self._queue)
        self._logger.addHandler(self._handler)
        # The file handler wants DEBUG records even when the console does not
        self._logger.setLevel(logging.DEBUG if self._log_file else self._level)

        self._listener = QueueListener(
            self._queue,
            *build_handlers(self._level, self._log_file),
            respect_handler_level=True,
        )
        self._listener.start()

    def stop(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None

        if self._handler is not None:
            self._logger.removeHandler(self._handler)
            self._handler = None

    def __enter__(self) -> "AsyncLogger":
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
) -> AsyncLogger:
    """
    Route the `whalewatch` logger through a started AsyncLogger.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional file receiving DEBUG and above.

    Returns:
        The running AsyncLogger; call stop() on shutdown.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    async_logger = AsyncLogger("whalewatch", level=numeric_level, log_file=log_file)
    async_logger.start()
    return async_logger

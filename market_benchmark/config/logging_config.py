# market_benchmark/config/logging_config.py

"""Run logging for market_benchmark.

Every launch writes a ``run_<timestamp>.log`` file in
``Settings.LOGS_DIR`` (``MARKET_LOGS_DIR``) and keeps only the newest
``Settings.LOG_KEEP_RUNS`` of them. The console shows records at
``Settings.CONSOLE_LOG_LEVEL`` (``MARKET_LOG_LEVEL``) and above.

Acquisition runs each query in a worker thread, so records from the
tiers would otherwise be hard to attribute. :func:`query_context` binds
the query being acquired to a context variable; ``asyncio.to_thread``
copies the context into the worker, and :class:`QueryContextFilter`
stamps the query onto every record as ``%(query)s``.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path

from market_benchmark.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(threadName)s [%(query)s] | "
    "%(name)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(levelname)-8s [%(query)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NO_QUERY = "-"
_current_query: ContextVar[str] = ContextVar(
    "market_benchmark_query", default=_NO_QUERY
)


class QueryContextFilter(logging.Filter):
    """Attach the query bound by :func:`query_context` to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.query = _current_query.get()
        return True


@contextmanager
def query_context(query: str) -> Iterator[None]:
    """Bind *query* to log records emitted in this context."""
    token = _current_query.set(query)
    try:
        yield
    finally:
        _current_query.reset(token)


def _console_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        msg = f"Unknown log level: {name!r}"
        raise ValueError(msg)
    return level


def _prune_runs(logs_dir: Path, keep: int) -> None:
    """Delete all but the newest *keep* run logs."""
    runs = sorted(logs_dir.glob("run_*.log"))
    for old in runs[: max(len(runs) - keep, 0)]:
        old.unlink(missing_ok=True)


def setup_logging(
    logs_dir: Path | None = None,
    console_level: str | None = None,
) -> Path:
    """Configure the ``market_benchmark`` logger and return the run log.

    Repeated calls keep the handlers already installed and return the
    path of the current run's file.
    """
    root_logger = logging.getLogger("market_benchmark")
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)

    level = _console_level(console_level or Settings.CONSOLE_LOG_LEVEL)
    target_dir = logs_dir or Settings.LOGS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    _prune_runs(target_dir, max(Settings.LOG_KEEP_RUNS - 1, 0))

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = target_dir / f"run_{timestamp}.log"

    root_logger.setLevel(logging.DEBUG)
    query_filter = QueryContextFilter()

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.addFilter(query_filter)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.addFilter(query_filter)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    root_logger.info(
        "Logging to %s (console level %s)",
        log_file,
        logging.getLevelName(level),
    )
    return log_file

import logging
import os
import sys

from .request_context import import_run_id_var, request_id_var

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    "request_id=%(request_id)s run_id=%(run_id)s %(message)s"
)

_base_factory = logging.getLogRecordFactory()


def _context_record(*args, **kwargs) -> logging.LogRecord:
    record = _base_factory(*args, **kwargs)
    record.request_id = request_id_var.get() or "-"
    record.run_id = import_run_id_var.get() or "-"
    return record


class ContextFormatter(logging.Formatter):
    """Tolerates records built before setup_logging swapped the factory."""

    def format(self, record: logging.LogRecord) -> str:
        record.__dict__.setdefault("request_id", "-")
        record.__dict__.setdefault("run_id", "-")
        return super().format(record)


def setup_logging(level: str | None = None) -> None:
    """Route everything through one stderr handler stamped with request and run ids.

    Safe to call more than once; later calls replace the handler and level.
    """
    level = (level or os.getenv("ACTIVITYLOG_LOG_LEVEL", "INFO")).upper()
    logging.setLogRecordFactory(_context_record)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ContextFormatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)

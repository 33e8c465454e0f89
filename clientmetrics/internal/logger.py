"""
Logging utilities for internal use.
Usage:
    from clientmetrics.internal.logger import get_logger
    log = get_logger(__name__)

    log.warning("batch (%db) larger than beacon limit (%db), dropping", size, limit)

Every record is rate limited per call site (pathname/lineno): one record per
``CLIENTMETRICS_LOGGING_RATE`` seconds (60 by default). The next record that
gets through carries the number of records skipped in between, e.g.

    WARNING batch (70000b) larger than beacon limit (60000b), dropping [3 skipped]

Setting ``CLIENTMETRICS_LOGGING_RATE=0`` or the logger level to DEBUG disables
rate limiting.
"""

import collections
import logging
import os
import time
from typing import DefaultDict
from typing import Tuple


SECOND = 1
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE


def get_logger(name: str) -> logging.Logger:
    """
    Retrieve or create a ``Logger`` instance with the rate limiting filter installed.
    """
    logger = logging.getLogger(name)
    # addFilter will only add the filter if it is not already present
    logger.addFilter(log_filter)
    logger.propagate = True
    return logger


class LoggingBucket:
    """Current time bucket of a call site and the number of records skipped in it."""

    def __init__(self, bucket: float, skipped: int):
        self.bucket = bucket
        self.skipped = skipped

    def __repr__(self):
        return f"LoggingBucket({self.bucket}, {self.skipped})"

    def is_sampled(self, record: logging.LogRecord, rate: float) -> bool:
        current = time.monotonic()
        if current - self.bucket >= rate:
            self.bucket = current
            record.skipped = self.skipped
            self.skipped = 0
            return True
        self.skipped += 1
        return False


_MINF = float("-inf")

_buckets: DefaultDict[Tuple[str, int], LoggingBucket] = collections.defaultdict(lambda: LoggingBucket(_MINF, 0))

_rate_limit = int(os.getenv("CLIENTMETRICS_LOGGING_RATE", default=60))


def log_filter(record: logging.LogRecord) -> bool:
    """
    Decide whether a record is emitted (True) or skipped (False).
    """
    logger = logging.getLogger(record.name)
    if not _rate_limit or logger.getEffectiveLevel() == logging.DEBUG:
        return True
    key = (record.pathname, record.lineno)
    return _buckets[key].is_sampled(record, _rate_limit)


class SkippedCountFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        skipped = getattr(record, "skipped", 0)
        skip_str = f" [{skipped} skipped]" if skipped else ""
        return f"{record.levelname} {super().format(record)}{skip_str}"


# setup the default formatter for all clientmetrics loggers
root_logger = logging.getLogger("clientmetrics")
if not root_logger.handlers:
    root_logger.addHandler(logging.StreamHandler())
    root_logger.handlers[0].setFormatter(SkippedCountFormatter())
root_logger.propagate = True

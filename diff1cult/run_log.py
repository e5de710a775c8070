"""Append-only record of the messages logged during one analysis run."""

from __future__ import annotations

import logging
from typing import List

PACKAGE_LOGGER = "diff1cult"


class RunLog(logging.Handler):
    """Logging handler that keeps every formatted record in memory.

    ``emit`` runs under the handler lock, so several threads can log into
    the same run.  The captured text ends up in the HTML report.
    """

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.records: List[str] = []
        self._saved_level = logging.NOTSET
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.records.append(self.format(record))
        except Exception:
            self.handleError(record)

    def text(self) -> str:
        return "\n".join(self.records)

    def attach(self, logger_name: str = PACKAGE_LOGGER) -> "RunLog":
        logger = logging.getLogger(logger_name)
        logger.addHandler(self)
        self._saved_level = logger.level
        if logger.level == logging.NOTSET or logger.level > self.level:
            logger.setLevel(self.level)
        return self

    def detach(self, logger_name: str = PACKAGE_LOGGER) -> None:
        logger = logging.getLogger(logger_name)
        logger.removeHandler(self)
        logger.setLevel(self._saved_level)

    def __enter__(self) -> "RunLog":
        return self.attach()

    def __exit__(self, *exc_info) -> None:
        self.detach()

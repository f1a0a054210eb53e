import csv
import logging
from pathlib import Path

from .errors import RecorderError
from .types import LocalizationRecord

logger = logging.getLogger(__name__)


class ResultRecorder:
    """Append-only CSV trace: one header row, then one row per frame.

    Rows must arrive in strictly increasing id order; nothing already written
    is ever rewritten.
    """

    def __init__(self, path=None):
        self.path = None
        self._file = None
        self._writer = None
        self.last_id = 0
        self.rows_written = 0
        if path is not None:
            self.open(path)

    @property
    def is_open(self):
        return self._file is not None

    def open(self, path):
        path = Path(path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(path, "w", newline="")
        except OSError as exc:
            raise RecorderError(f"cannot open result file {path}: {exc}") from exc
        self.path = path
        self._writer = csv.writer(self._file, lineterminator="\n")
        self._writer.writerow(LocalizationRecord.HEADER)
        self._file.flush()
        logger.info("saving results to %s", path)
        return self

    def append(self, record):
        if not self.is_open:
            raise RecorderError("result file is not open")
        if record.id <= self.last_id:
            raise ValueError(
                f"record id {record.id} does not follow last id {self.last_id}"
            )
        try:
            self._writer.writerow(record.as_row())
            self._file.flush()
        except OSError as exc:
            raise RecorderError(f"cannot write to {self.path}: {exc}") from exc
        self.last_id = record.id
        self.rows_written += 1

    def close(self, total_fitness=None):
        if not self.is_open:
            return
        if total_fitness is not None:
            logger.info("ICP score: %f", total_fitness)
        self._file.flush()
        self._file.close()
        self._file = None
        self._writer = None
        logger.info("wrote %d rows to %s", self.rows_written, self.path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

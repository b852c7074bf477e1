"""Operation telemetry — structured records of registry operations.

:class:`TelemetrySink` is the interface an application implements to
receive operation records. :class:`OperationLog` is the bundled sink: it
appends each record as one JSON line to a file, or to an in-memory
bounded buffer that can be drained when no file is configured.
"""
from __future__ import annotations

import collections
import datetime
import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from object_atlas.index.naming import InvalidArgumentError

DEFAULT_BUFFER_SIZE = 1000


@dataclass
class OperationRecord:
    """A single logged operation.

    Parameters
    ----------
    operation:
        Normalized operation name (e.g. "spawn_wave").
    details:
        Arbitrary key-value data describing the operation.
    timestamp:
        UTC datetime of the record. Defaults to now.
    """

    operation: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary suitable for JSON encoding."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "operation": self.operation,
            "details": self.details,
        }


class TelemetrySink(ABC):
    """Receiver for :class:`OperationRecord` values.

    Implementations must return quickly; callers never wait on telemetry.
    """

    @abstractmethod
    def record(self, record: OperationRecord) -> None:
        """Accept one operation record."""


class OperationLog(TelemetrySink):
    """Append-only JSONL operation log.

    Thread-safe. Values in ``details`` that JSON cannot encode are written
    using their ``str()`` form.

    Parameters
    ----------
    log_path:
        Path to the JSONL file. Parent directories are created. If None,
        records are buffered in memory only.
    buffer_size:
        Maximum number of records kept in memory when no file is
        configured. Older records are discarded first.
    """

    def __init__(
        self, log_path: Optional[Path] = None, buffer_size: int = DEFAULT_BUFFER_SIZE
    ) -> None:
        if buffer_size < 1:
            raise InvalidArgumentError("buffer_size", "must be at least 1")
        self._log_path = log_path
        self._buffer: collections.deque[str] = collections.deque(maxlen=buffer_size)
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def log_path(self) -> Optional[Path]:
        return self._log_path

    def record(self, record: OperationRecord) -> None:
        """Append *record* to the log."""
        line = json.dumps(record.to_dict(), separators=(",", ":"), default=str)
        with self._lock:
            if self._log_path is not None:
                with self._log_path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            else:
                self._buffer.append(line)

    def drain_buffer(self) -> list[str]:
        """Return and clear the in-memory buffer, oldest first."""
        with self._lock:
            lines = list(self._buffer)
            self._buffer.clear()
        return lines

    def read_log(self, tail: Optional[int] = None) -> list[dict[str, object]]:
        """Read records back from the file or the buffer.

        Parameters
        ----------
        tail:
            If provided, return only the last *tail* records.

        Returns
        -------
        list[dict[str, object]]
            Parsed records in chronological order. Malformed lines are
            skipped.
        """
        return read_operation_lines(self._read_lines(), tail)

    def _read_lines(self) -> list[str]:
        with self._lock:
            if self._log_path is None or not self._log_path.exists():
                return list(self._buffer)
            return self._log_path.read_text(encoding="utf-8").splitlines()


def read_operation_lines(lines: list[str], tail: Optional[int] = None) -> list[dict[str, object]]:
    """Parse JSONL operation lines, skipping blank and malformed ones."""
    parsed: list[dict[str, object]] = []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        try:
            entry = json.loads(stripped)
        except json.JSONDecodeError:
            continue
        if isinstance(entry, dict):
            parsed.append(entry)

    if tail is not None:
        return parsed[-tail:] if tail > 0 else []
    return parsed

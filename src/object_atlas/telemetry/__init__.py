"""Operation telemetry sinks."""
from __future__ import annotations

from object_atlas.telemetry.operation_log import (
    OperationLog,
    OperationRecord,
    TelemetrySink,
    read_operation_lines,
)

__all__ = [
    "OperationLog",
    "OperationRecord",
    "TelemetrySink",
    "read_operation_lines",
]

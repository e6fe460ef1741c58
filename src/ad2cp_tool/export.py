"""JSON-friendly views of decoded records and decode results."""

from __future__ import annotations

import dataclasses
import math
from datetime import datetime
from typing import Any

import numpy as np

from .records import Record
from .stream import DecodeResult

# Properties worth exporting next to the raw enumerated values.
_LABEL_PROPERTIES = (
    "family_label",
    "coordinate_system_label",
    "wake_up_state_label",
    "previous_wake_up_state_label",
    "orientation_label",
    "auto_orientation_label",
    "echo_index_label",
    "spectrum_type_label",
    "processing_method_label",
)


def _jsonable(value: Any, include_arrays: bool) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out = {
            f.name: _jsonable(getattr(value, f.name), include_arrays)
            for f in dataclasses.fields(value)
        }
        for name in _LABEL_PROPERTIES:
            if hasattr(type(value), name):
                out[name] = getattr(value, name)
        return out
    if isinstance(value, np.ndarray):
        if not include_arrays:
            return {"shape": list(value.shape)}
        if value.dtype.kind == "f":
            # NaN fill values become null
            values = value.astype(object)
            values[~np.isfinite(value)] = None
            return values.tolist()
        return value.tolist()
    if isinstance(value, np.generic):
        return _jsonable(value.item(), include_arrays)
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v, include_arrays) for v in value]
    return value


def record_to_dict(record: Record, include_arrays: bool = True) -> dict:
    data = _jsonable(record, include_arrays)
    data["kind"] = record.kind
    return data


def result_to_dict(result: DecodeResult, include_arrays: bool = True) -> dict:
    return {
        "summary": {
            "records": len(result.records),
            "bytes_consumed": result.bytes_consumed,
            "truncated": result.truncated,
            "by_series": {
                f"0x{series:02X}": count
                for series, count in sorted(result.counts_by_series().items())
            },
            "diagnostics": dict(result.counts_by_code()),
            "error": None if result.error is None else str(result.error),
        },
        "records": [record_to_dict(r, include_arrays) for r in result.records],
        "diagnostics": [dataclasses.asdict(d) for d in result.diagnostics],
    }


__all__ = ["record_to_dict", "result_to_dict"]

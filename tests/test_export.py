from __future__ import annotations

import json

from ad2cp_tool.export import record_to_dict, result_to_dict
from ad2cp_tool.stream import decode

from conftest import current_profile_body, make_record, status_word, wave_body


def _result():
    body = current_profile_body(
        beams=2,
        cells=2,
        flags=("has_velocity_data", "has_correlation_data"),
        velocity=[[1, 2], [3, 4]],
        correlation=[[5, 6], [7, 8]],
        status=status_word(orientation=4),
    )
    return decode(make_record(0x16, body) + make_record(0x99, b"\x00"))


def test_record_to_dict_is_json_ready() -> None:
    result = _result()
    data = record_to_dict(result.records[0])

    assert data["kind"] == "current_profile"
    assert data["header"]["family_label"] == "Signature"
    assert data["coordinate_system_label"] == "ENU"
    assert data["common"]["timestamp"] == "2023-05-17T12:30:45.123400"
    assert data["common"]["status"]["orientation_label"] == "ZUP"
    assert data["correlation"] == [[5, 6], [7, 8]]
    assert data["amplitude"] == []
    json.dumps(data)


def test_arrays_can_be_reduced_to_shapes() -> None:
    data = record_to_dict(_result().records[0], include_arrays=False)
    assert data["velocity"] == {"shape": [2, 2]}
    assert data["percentage_good"] == {"shape": [0]}


def test_result_summary() -> None:
    data = result_to_dict(_result())
    summary = data["summary"]
    assert summary["records"] == 2
    assert summary["by_series"] == {"0x16": 1, "0x99": 1}
    assert summary["diagnostics"] == {"UNKNOWN_TAG": 1, "LENGTH_DRIFT": 1}
    assert summary["error"] is None
    assert data["records"][1]["kind"] == "unknown"
    assert data["diagnostics"][0]["code"] == "UNKNOWN_TAG"
    json.dumps(data)


def test_non_finite_floats_export_as_null() -> None:
    nan = float("nan")
    body = wave_body(
        parameters=[nan] + [float(i) for i in range(1, 20)],
        energy=[nan, 0.5],
        bins=2,
    )
    result = decode(make_record(0x30, body))
    data = result_to_dict(result)

    record = data["records"][0]
    assert record["parameters"]["height0"] is None
    assert record["parameters"]["height3"] == 1.0
    assert record["energy"]["data"] == [None, 0.5]
    json.dumps(data, allow_nan=False)

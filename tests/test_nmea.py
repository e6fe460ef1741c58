from __future__ import annotations

from functools import reduce

import pytest

from ad2cp_tool.nmea import (
    SENTENCE_CODES,
    encode_sentences,
    format_sentence,
    nmea_checksum,
    validate_codes,
)
from ad2cp_tool.stream import decode

from conftest import current_profile_body, make_record, wave_body

PROFILE_FLAGS = ("has_velocity_data", "has_amplitude_data", "has_correlation_data")


def _xor(body: str) -> int:
    return reduce(lambda acc, ch: acc ^ ord(ch), body, 0)


def _body(sentence: str) -> str:
    assert sentence.startswith("$")
    body, checksum = sentence[1:].rsplit("*", 1)
    assert checksum == f"{_xor(body):02X}"
    return body


@pytest.fixture
def profile_records():
    body = current_profile_body(
        beams=3,
        cells=1,
        coordinate_system=0,
        flags=PROFILE_FLAGS,
        velocity=[[100], [200], [300]],
        amplitude=[[20], [40], [60]],
        correlation=[[90], [80], [70]],
        velocity_scaling=-2,
    )
    result = decode(make_record(0x16, body) + make_record(0xA0, b"note"))
    assert result.ok
    return result.records


@pytest.fixture
def wave_records():
    body = wave_body(
        parameters=[float(i) for i in range(20)],
        bands=([float(i) for i in range(8)], [float(i) for i in range(8)]),
        energy=[0.5, 0.25],
        fourier=[float(i) for i in range(8)],
        direction=[1.0, 2.0, 3.0, 4.0],
        bins=2,
    )
    result = decode(make_record(0x30, body))
    assert result.ok
    return result.records


def test_checksum_is_xor_of_body() -> None:
    assert nmea_checksum("PNORI,4,3,1") == _xor("PNORI,4,3,1")
    sentence = format_sentence(["GPXXX", "1", "2"])
    assert sentence == f"$GPXXX,1,2*{_xor('GPXXX,1,2'):02X}"


def test_pnorc_variants(profile_records) -> None:
    (c1,) = encode_sentences(profile_records, ["PNORC1"])
    assert _body(c1) == (
        "PNORC1,051723,123045,1,1.00,1.000,2.000,3.000,"
        "10.00,20.00,30.00,90,80,70"
    )

    (c2,) = encode_sentences(profile_records, ["PNORC2"])
    assert _body(c2) == (
        "PNORC2,DATE=051723,TIME=123045,CN=1,CP=1.00,VE=1.000,VN=2.000,VU=3.000,"
        "A1=10.00,A2=20.00,A3=30.00,C1=90,C2=80,C3=70"
    )

    (bare,) = encode_sentences(profile_records, ["PNORC"])
    assert _body(bare) == (
        "PNORC,051723,123045,1,1.000,2.000,3.000,10.00,20.00,30.00,90,80,70"
    )


def test_pnori_variants(profile_records) -> None:
    lines = encode_sentences(profile_records, ["PNORI1", "PNORI2", "PNORI"])
    assert [_body(line) for line in lines] == [
        "PNORI1,4,123456,3,1,0.50,1.00,ENU",
        "PNORI2,IT=4,SN=123456,NB=3,NC=1,BD=0.50,CS=1.00,CY=ENU",
        "PNORI,4,3,1,0.50,1.00,ENU",
    ]


def test_pnors_variants_without_standard_deviation(profile_records) -> None:
    s1, bare = encode_sentences(profile_records, ["PNORS1", "PNORS"])
    assert _body(s1) == (
        "PNORS1,051723,123045,00000000,00000000,12.00,1500.00,,90.00,-1.50,,"
        "2.50,,10.500,,12.34"
    )
    assert _body(bare) == (
        "PNORS,051723,123045,00000000,00000000,12.00,1500.00,90.00,-1.50,"
        "2.50,10.500,12.34"
    )


def test_one_pnorc_line_per_cell() -> None:
    body = current_profile_body(
        beams=2, cells=3, coordinate_system=2, flags=PROFILE_FLAGS, velocity_scaling=-3
    )
    records = decode(make_record(0x16, body)).records
    lines = encode_sentences(records, ["PNORC2"])
    assert len(lines) == 3
    assert [_body(line).split(",")[3] for line in lines] == [
        "CN=1",
        "CN=2",
        "CN=3",
    ]
    assert "V1=0.000" in lines[0] and "V2=0.000" in lines[0]
    # cell 3 centre: 0.5 blanking + 2.5 cells of 1.0 m
    assert "CP=3.00" in lines[2]


def test_missing_arrays_give_empty_fields() -> None:
    records = decode(make_record(0x16, current_profile_body(beams=2, cells=1))).records
    (line,) = encode_sentences(records, ["PNORC1"])
    assert _body(line) == "PNORC1,051723,123045,1,1.00,,,,,,"


def test_wave_sentences(wave_records) -> None:
    (pnorw,) = encode_sentences(wave_records, ["PNORW"])
    assert _body(pnorw) == (
        "PNORW,051723,123045,1,4,0.00,1.00,2.00,3.00,5.00,6.00,7.00,12.00,"
        "13.00,14.00,15.00,16.00,5,6,17.00,18.00,2345"
    )

    swell, sea = encode_sentences(wave_records, ["PNORB"])
    assert _body(swell) == (
        "PNORB,051723,123045,1,4,0.00,1.00,2.00,3.00,4.00,5.00,7.00,6.00,2345"
    )
    assert _body(sea) == _body(swell)

    (pnore,) = encode_sentences(wave_records, ["PNORE"])
    assert _body(pnore) == "PNORE,051723,123045,1,0.0200,0.0100,2,0.5000,0.2500"

    fourier = encode_sentences(wave_records, ["PNORF"])
    assert [_body(line).split(",")[1] for line in fourier] == ["A1", "B1", "A2", "B2"]
    assert _body(fourier[3]).endswith(",2,6.0000,7.0000")

    md, ds = encode_sentences(wave_records, ["PNORWD"])
    assert _body(md) == "PNORWD,MD,051723,123045,1,0.0200,0.0100,2,1.00,2.00"
    assert _body(ds).endswith(",3.00,4.00")


def test_codes_only_apply_to_matching_records(profile_records, wave_records) -> None:
    lines = encode_sentences(profile_records + wave_records, ["PNORI", "PNORW"])
    assert [line.split(",")[0] for line in lines] == ["$PNORI", "$PNORW"]


def test_validate_codes() -> None:
    assert validate_codes([" pnori1", "PNORC"]) == ["PNORI1", "PNORC"]
    assert set(SENTENCE_CODES) >= {"PNORI", "PNORS2", "PNORC1", "PNORWD"}
    with pytest.raises(ValueError, match="PNORX"):
        validate_codes(["PNORX"])
    with pytest.raises(ValueError):
        encode_sentences([], ["PNORZ"])

from __future__ import annotations

import json

import pytest

from metrics_gateway.services.payload import coerce_number, decode_payload, extract_numerics


@pytest.mark.parametrize("blob", [None, "", "   ", "{bad json", "[1, 2, 3]", '"text"', "42", b"\xff\xfe"])
def test_extract_numerics_empty_for_unusable_payloads(blob) -> None:
    assert extract_numerics(blob) == {}


def test_extract_numerics_coerces_mixed_values() -> None:
    blob = '{"a":"3.5","b":true,"c":false,"d":[1,2],"e":7}'
    assert extract_numerics(blob) == {"a": 3.5, "b": 1.0, "c": 0.0, "e": 7.0}


def test_extract_numerics_drops_non_numeric_kinds() -> None:
    blob = json.dumps(
        {
            "label": "kitchen",
            "nested": {"x": 1},
            "missing": None,
            "spaced": " -2.5e1 ",
            "word": "12abc",
            "nan_text": "NaN",
        }
    )
    assert extract_numerics(blob) == {"spaced": -25.0}


def test_extract_numerics_only_returns_payload_keys() -> None:
    payload = {"temperature": 21.5, "humidity": "40", "status": "ok", "on": True}
    result = extract_numerics(json.dumps(payload))
    assert set(result) <= set(payload)
    assert list(result) == ["temperature", "humidity", "on"]


def test_extract_numerics_accepts_bytes() -> None:
    assert extract_numerics(b'{"power": 120}') == {"power": 120.0}


def test_non_standard_constants_make_payload_malformed() -> None:
    assert extract_numerics('{"a": NaN, "b": 1}') == {}


def test_overflowing_numbers_are_dropped() -> None:
    blob = '{"huge": ' + "9" * 400 + ', "tiny": 1e400, "ok": 2}'
    assert extract_numerics(blob) == {"ok": 2.0}


def test_coerce_number_rules() -> None:
    assert coerce_number(True) == 1.0
    assert coerce_number(0) == 0.0
    assert coerce_number(".5") == 0.5
    assert coerce_number("1.") == 1.0
    assert coerce_number("inf") is None
    assert coerce_number("") is None
    assert coerce_number([1]) is None
    assert coerce_number(None) is None


def test_decode_payload_returns_objects_only() -> None:
    assert decode_payload('{"a": [1, 2], "b": {"c": "d"}}') == {"a": [1, 2], "b": {"c": "d"}}
    assert decode_payload("[]") == {}
    assert decode_payload("not json") == {}

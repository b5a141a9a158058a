from datetime import date, datetime, timezone

import pytest

from things_bridge.dates import (
    decode_epoch,
    decode_packed,
    encode_packed,
    format_epoch_date,
    format_packed_date,
    parse_iso_date,
)


def test_decode_packed_reads_bit_fields():
    # 2024 << 16 | 3 << 12 | 15 << 7
    assert decode_packed("132659072") == date(2024, 3, 15)
    assert decode_packed(132659072) == date(2024, 3, 15)


def test_encode_packed_matches_layout():
    assert encode_packed(date(2024, 3, 15)) == 132659072
    assert decode_packed(encode_packed(date(1999, 12, 31))) == date(1999, 12, 31)


def test_decode_packed_accepts_float_text():
    assert decode_packed("132659072.0") == date(2024, 3, 15)


@pytest.mark.parametrize("raw", [None, "", "  ", "NULL", "null", "0", "-5", "abc", "nan"])
def test_decode_packed_returns_none_for_blank_or_invalid(raw):
    assert decode_packed(raw) is None


def test_decode_packed_rejects_impossible_month():
    raw = (2024 << 16) | (13 << 12) | (1 << 7)
    assert decode_packed(raw) is None


def test_decode_epoch_returns_utc_datetime():
    assert decode_epoch("1700000000") == datetime(
        2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc
    )
    assert decode_epoch("1700000000.5").microsecond == 500000


@pytest.mark.parametrize("raw", [None, "", "NULL", "0", "garbage", "1e400"])
def test_decode_epoch_never_raises(raw):
    assert decode_epoch(raw) is None


def test_format_helpers_return_iso_or_empty():
    assert format_epoch_date("1700000000") == "2023-11-14"
    assert format_epoch_date("") == ""
    assert format_packed_date("132659072") == "2024-03-15"
    assert format_packed_date("NULL") == ""


def test_parse_iso_date():
    assert parse_iso_date(" 2024-03-15 ") == date(2024, 3, 15)
    with pytest.raises(ValueError):
        parse_iso_date("15/03/2024")

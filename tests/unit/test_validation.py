"""
Unit tests for input normalization and record helpers.
"""

from datetime import datetime, timezone

import pytest

from src.domain.exceptions import InvalidInput
from src.domain.validation import (
    dump_record,
    load_record,
    normalize_code,
    parse_instant,
    require_code,
    require_email,
    require_password,
)


class TestEmail:
    def test_normalized(self) -> None:
        assert require_email("  User@Example.COM ") == "user@example.com"

    @pytest.mark.parametrize("email", [None, "", "   ", "no-at-sign", "a@b", "a b@c.com", "@b.com"])
    def test_malformed_rejected(self, email) -> None:
        with pytest.raises(InvalidInput, match="Valid email required"):
            require_email(email)


class TestCode:
    @pytest.mark.parametrize("code", ["bav-rek", "BAVREK", " bav rek ", "BAV_REK"])
    def test_normalized(self, code: str) -> None:
        assert require_code(code) == "BAVREK"

    def test_normalize_keeps_digits(self) -> None:
        assert normalize_code("a1b-2c3") == "A1B2C3"

    @pytest.mark.parametrize("code", [None, "", "BAV", "BAV-REKX"])
    def test_wrong_length_rejected(self, code) -> None:
        with pytest.raises(InvalidInput):
            require_code(code)


class TestPassword:
    def test_min_length(self) -> None:
        assert require_password("12345678") == "12345678"
        with pytest.raises(InvalidInput):
            require_password("1234567")

    def test_non_string_rejected(self) -> None:
        with pytest.raises(InvalidInput):
            require_password(None)


class TestRecords:
    def test_dump_is_compact_and_sorted(self) -> None:
        assert dump_record({"b": 1, "a": 2}) == b'{"a":2,"b":1}'

    @pytest.mark.parametrize("raw", [None, b"", b"{bad", b"[1,2]", b'"text"', b"\xff\xfe"])
    def test_unusable_blobs_read_as_absent(self, raw) -> None:
        assert load_record(raw) is None

    def test_load_object(self) -> None:
        assert load_record(b'{"a":1}') == {"a": 1}


class TestParseInstant:
    """Timestamps in every stored shape."""

    def test_iso_with_z(self) -> None:
        assert parse_instant("2026-01-01T00:00:00Z") == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_naive_iso_is_utc(self) -> None:
        assert parse_instant("2026-01-01T00:00:00") == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_epoch_seconds(self) -> None:
        assert parse_instant(1767225600) == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_epoch_milliseconds(self) -> None:
        assert parse_instant(1767225600000) == datetime(2026, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, True, False, "", "yesterday", [], {}])
    def test_unreadable_is_none(self, value) -> None:
        assert parse_instant(value) is None

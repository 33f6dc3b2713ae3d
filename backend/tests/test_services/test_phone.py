"""Tests for phone normalization."""

import pytest

from staydesk.services.phone import normalize


class TestNormalize:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("0712345678", "254712345678"),
            ("712345678", "254712345678"),
            ("+254 712 345 678", "254712345678"),
            ("", ""),
            (None, ""),
            ("0712-345-678", "254712345678"),
            ("(0712) 345 678", "254712345678"),
            ("254712345678", "254712345678"),
            ("+1 555 123 4567", "15551234567"),
            ("812345678", "812345678"),
            ("012345", "012345"),
            ("phone: n/a", ""),
        ],
    )
    def test_shapes(self, raw, expected):
        assert normalize(raw) == expected

    def test_custom_country_code(self):
        assert normalize("0712345678", country_code="255") == "255712345678"

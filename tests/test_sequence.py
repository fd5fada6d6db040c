"""Unit tests for auth/sequence.py -- business identifier helpers."""

import pytest

from auth.sequence import format_business_id, next_business_id, parse_business_id


def test_format_pads_to_six_digits():
    assert format_business_id("EMP", 1) == "EMP-000001"
    assert format_business_id("EMP", 123456) == "EMP-123456"


def test_format_grows_past_width():
    assert format_business_id("EMP", 1234567) == "EMP-1234567"


def test_format_rejects_zero():
    with pytest.raises(ValueError):
        format_business_id("EMP", 0)


def test_first_identifier():
    assert next_business_id(None, "EMP") == "EMP-000001"


def test_next_follows_last():
    assert next_business_id("EMP-000041", "EMP") == "EMP-000042"


@pytest.mark.parametrize("value", ["EMP-12ab", "EMP", "XYZ-000010", "EMP-", "garbage", "EMP-１２"])
def test_unparsable_counts_as_zero(value):
    assert parse_business_id(value, "EMP") == 0
    assert next_business_id(value, "EMP") == "EMP-000001"

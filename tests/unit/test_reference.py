"""Unit tests for external draft reference parsing"""

import pytest

from labintake.domain.submissions.reference import MAX_DRAFT_ID, parse_reference


class TestParseReference:
    """Only positive integers name a draft; everything else means 'no draft yet'"""

    @pytest.mark.parametrize("raw,expected", [
        ("42", 42),
        (" 7 ", 7),
        (3, 3),
        ("0007", 7),
        (str(MAX_DRAFT_ID), MAX_DRAFT_ID),
    ])
    def test_valid_references(self, raw, expected):
        assert parse_reference(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "0", 0, -5, "-5", "abc", "12abc", "1.5", True, False, "   "])
    def test_invalid_references_are_none(self, raw):
        assert parse_reference(raw) is None

    @pytest.mark.parametrize("raw", ["99999999999999999999", str(MAX_DRAFT_ID + 1), MAX_DRAFT_ID + 1, 10**30])
    def test_out_of_range_references_are_none(self, raw):
        assert parse_reference(raw) is None

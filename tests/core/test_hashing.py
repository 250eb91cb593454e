"""Tests for deterministic sense identifiers.

The hash must match ids already stored by the legacy writer, so the
expected values below are Java ``String.hashCode`` results.
"""

import pytest

from lexispine.core.hashing import (
    DEFAULT_PROBE_COUNT,
    candidate_sense_ids,
    rolling_hash32,
    sense_id,
)


class TestRollingHash:
    def test_matches_java_string_hash(self):
        assert rolling_hash32("") == 0
        assert rolling_hash32("abc") == 96354

    def test_wraps_to_signed_32_bit(self):
        # Well-known string whose Java hashCode is Integer.MIN_VALUE
        assert rolling_hash32("polygenelubricants") == -(2**31)

    def test_thai_uses_utf16_code_units(self):
        expected = 0
        for ch in "บ้าน":
            expected = (expected * 31 + ord(ch)) & 0xFFFFFFFF
        if expected & 0x80000000:
            expected -= 1 << 32
        assert rolling_hash32("บ้าน") == expected

    def test_astral_characters_count_as_two_units(self):
        # U+1F600 is the surrogate pair D83D DE00
        assert rolling_hash32("\U0001F600") == 0xD83D * 31 + 0xDE00


class TestSenseId:
    def test_known_value(self):
        # "a-0" → 97, 45, 48 → 94660
        assert sense_id("a", 0) == 94_660_000

    def test_index_is_encoded_in_low_digits(self):
        assert sense_id("บ้าน", 7) % 1000 == 7

    def test_deterministic(self):
        assert sense_id("บ้าน", 2) == sense_id("บ้าน", 2)
        assert sense_id("บ้าน", 1) != sense_id("บ้าน", 2)

    def test_always_non_negative(self):
        assert all(i >= 0 for i in candidate_sense_ids("polygenelubricants"))

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            sense_id("บ้าน", -1)


class TestCandidateIds:
    def test_default_probe_range(self):
        ids = candidate_sense_ids("บ้าน")
        assert len(ids) == DEFAULT_PROBE_COUNT == 21
        assert ids[0] == sense_id("บ้าน", 0)
        assert ids[-1] == sense_id("บ้าน", 20)

    def test_custom_count(self):
        assert candidate_sense_ids("บ้าน", 3) == [sense_id("บ้าน", i) for i in range(3)]

"""Tests for the three sense generations and version detection."""

from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from lexispine.records.sense import (
    SchemaVersion,
    SenseV1,
    SenseV2,
    SenseV3,
    detect_schema_version,
    load_sense,
    sanitize_label,
)

BASE = {"id": 42, "definition_th": "ที่อยู่อาศัย"}


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


class TestIdentifier:
    @pytest.mark.parametrize("raw", [42, "42", " 42 ", 42.0, Decimal("42"), 2**40])
    def test_accepts_integral_values(self, raw):
        sense = SenseV1.model_validate({**BASE, "id": raw})
        assert isinstance(sense.id, int)

    @pytest.mark.parametrize("raw", [True, -1, "-1", 4.2, "abc", None, Decimal("4.5")])
    def test_rejects(self, raw):
        with pytest.raises(ValidationError):
            SenseV1.model_validate({**BASE, "id": raw})


# ---------------------------------------------------------------------------
# V1 fields
# ---------------------------------------------------------------------------


class TestSenseV1:
    def test_optional_fields(self):
        sense = SenseV1.model_validate(BASE)
        assert sense.word_th_id is None and sense.source is None and sense.created_at is None

    def test_created_at_accepts_iso_string(self):
        sense = SenseV1.model_validate({**BASE, "created_at": "2024-01-01T00:00:00+00:00"})
        assert isinstance(sense.created_at, datetime)

    @pytest.mark.parametrize(
        "row",
        [
            {"id": 1},
            {**BASE, "definition_th": " "},
            {**BASE, "source": 3},
            {**BASE, "pos_th": "คำนาม"},
        ],
    )
    def test_rejects(self, row):
        with pytest.raises(ValidationError):
            SenseV1.model_validate(row)

    def test_is_raw(self):
        assert SenseV1.model_validate({**BASE, "source": "orst"}).is_raw()
        assert SenseV1.model_validate({**BASE, "source": "ORST"}).is_raw()
        assert not SenseV1.model_validate({**BASE, "source": "gpt-normalized"}).is_raw()
        assert not SenseV1.model_validate(BASE).is_raw()


# ---------------------------------------------------------------------------
# Generations
# ---------------------------------------------------------------------------


class TestGenerations:
    def test_v3_label_must_be_single_english_word(self):
        assert SenseV3.model_validate({**BASE, "label_eng": "house"}).label_eng == "house"
        for bad in ("two words", "บ้าน", "house1", ""):
            with pytest.raises(ValidationError):
                SenseV3.model_validate({**BASE, "label_eng": bad})

    def test_v1_row_is_valid_v3(self):
        assert SenseV3.model_validate(BASE).label_eng is None

    @pytest.mark.parametrize(
        "extra, version, model",
        [
            ({}, SchemaVersion.V1, SenseV1),
            ({"pos_eng": "noun"}, SchemaVersion.V2, SenseV2),
            ({"pos_eng": "noun", "label_eng": "house"}, SchemaVersion.V3, SenseV3),
            ({"label_eng": "house"}, SchemaVersion.V3, SenseV3),
            ({"pos_eng": "  "}, SchemaVersion.V1, SenseV1),
        ],
    )
    def test_load_sense_tags_generation(self, extra, version, model):
        sense = load_sense({**BASE, **extra})
        assert type(sense) is model
        assert sense.schema_version is version
        assert detect_schema_version(SenseV3.model_validate({**BASE, **extra})) is version

    def test_load_sense_accepts_instances(self):
        sense = load_sense(SenseV2.model_validate({**BASE, "pos_eng": "noun"}))
        assert sense.schema_version is SchemaVersion.V2

    def test_rank(self):
        assert [v.rank for v in SchemaVersion] == [1, 2, 3]


# ---------------------------------------------------------------------------
# Label sanitation
# ---------------------------------------------------------------------------


class TestSanitizeLabel:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("house", "house"),
            ("  House, home ", "House"),
            ("dwelling.", "dwelling"),
            ("self-esteem", "selfesteem"),
        ],
    )
    def test_first_word_letters_only(self, raw, expected):
        assert sanitize_label(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "บ้าน", "house บ้าน", "123"])
    def test_rejects(self, raw):
        with pytest.raises(ValueError):
            sanitize_label(raw)

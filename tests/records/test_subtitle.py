"""Tests for the Subtitle record and its token list."""

import pytest
from pydantic import ValidationError

from lexispine.records.subtitle import Subtitle

ROW = {"id": "show-s01e01_1", "thai": "ไปบ้าน", "start_sec_th": 1.0, "end_sec_th": 2.5}


class TestSubtitle:
    def test_untokenized(self):
        sub = Subtitle.model_validate(ROW)
        assert not sub.is_tokenized
        assert sub.tokens == []

    def test_tokenized(self):
        sub = Subtitle.model_validate({**ROW, "tokens_th": {"tokens": ["ไป", "บ้าน"]}})
        assert sub.is_tokenized
        assert sub.tokens == ["ไป", "บ้าน"]

    def test_numeric_strings_accepted_for_offsets(self):
        sub = Subtitle.model_validate({**ROW, "start_sec_th": "1", "end_sec_th": "2"})
        assert sub.start_sec_th == 1.0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"end_sec_th": 1.0},
            {"end_sec_th": 0.5},
            {"start_sec_th": -1},
            {"end_sec_th": 86_400},
            {"start_sec_th": True},
            {"thai": " "},
            {"tokens_th": {"tokens": []}},
            {"tokens_th": {"tokens": [" ไป"]}},
            {"tokens_th": {"tokens": [""]}},
            {"tokens_th": ["ไป"]},
        ],
    )
    def test_rejects(self, overrides):
        with pytest.raises(ValidationError):
            Subtitle.model_validate({**ROW, **overrides})

    def test_to_row_round_trips_token_shape(self):
        row = Subtitle.model_validate({**ROW, "tokens_th": {"tokens": ["ไป"]}}).to_row()
        assert row["tokens_th"] == {"tokens": ["ไป"]}

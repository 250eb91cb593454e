"""Tests for LexiSettings."""

import pytest
from pydantic import ValidationError

from lexispine.core.settings import LexiSettings, ReadBackPolicy


class TestLexiSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEXISPINE_READ_BACK_POLICY", raising=False)
        s = LexiSettings(_env_file=None)
        assert s.read_back_policy is ReadBackPolicy.WARN
        assert s.inter_token_delay_seconds == 0.1
        assert s.sense_id_probe_count == 21
        assert s.raw_source_markers == ("orst", "ORST")
        assert s.normalized_source == "gpt-normalized"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("LEXISPINE_READ_BACK_POLICY", "fail")
        monkeypatch.setenv("LEXISPINE_ORACLE_TIMEOUT_SECONDS", "2.5")
        s = LexiSettings(_env_file=None)
        assert s.read_back_policy is ReadBackPolicy.FAIL
        assert s.oracle_timeout_seconds == 2.5

    def test_log_level_normalized(self):
        assert LexiSettings(_env_file=None, log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"log_level": "chatty"},
            {"inter_token_delay_seconds": -1},
            {"oracle_timeout_seconds": 0},
            {"oracle_burst": 0},
            {"normalized_source": "orst"},
            {"normalized_source": "  "},
        ],
    )
    def test_rejects_invalid(self, overrides):
        with pytest.raises(ValidationError):
            LexiSettings(_env_file=None, **overrides)

"""Tests for IntegrityIssue paths and pydantic error translation."""

import pytest
from pydantic import ValidationError

from lexispine.contracts.issues import (
    ContractResult,
    IntegrityIssue,
    IssueKind,
    format_path,
    issues_from_validation_error,
    join_path,
)
from lexispine.records.subtitle import Subtitle


class TestPaths:
    @pytest.mark.parametrize(
        "loc, expected",
        [
            (("senses", 0, "source"), "senses[0].source"),
            (("tokens_th", "tokens", 2), "tokens_th.tokens[2]"),
            ((), "(root)"),
        ],
    )
    def test_format_path(self, loc, expected):
        assert format_path(loc) == expected

    def test_join_path(self):
        assert join_path("word", "g2p") == "word.g2p"
        assert join_path("senses", "[1].id") == "senses[1].id"
        assert join_path("word", "(root)") == "word"
        assert join_path("", "g2p") == "g2p"


class TestIssues:
    def test_from_validation_error(self):
        with pytest.raises(ValidationError) as info:
            Subtitle.model_validate({"id": "a", "start_sec_th": 1, "end_sec_th": 2, "tokens_th": {"tokens": []}})
        issues = {i.field: i for i in issues_from_validation_error(info.value)}

        assert issues["thai"].kind is IssueKind.MISSING
        assert issues["thai"].present is False
        assert issues["tokens_th.tokens"].kind is IssueKind.STRUCTURAL
        assert issues["tokens_th.tokens"].expected == "a non-empty list"
        assert issues["tokens_th.tokens"].actual == []

    def test_business_rule_presence(self):
        issue = IntegrityIssue.business_rule("g2p", "blank", expected="non-blank g2p", actual=None)
        assert issue.present is False
        assert not issue.is_structural
        assert "actual" not in issue.to_dict()

    def test_under(self):
        issue = IntegrityIssue("source", "x", IssueKind.BUSINESS_RULE).under("senses[2]")
        assert issue.field == "senses[2].source"


class TestContractResult:
    def test_states(self):
        ok = ContractResult.ok(1)
        assert ok.passed and not ok.structural and not ok.incomplete

        rule = IntegrityIssue("g2p", "blank", IssueKind.BUSINESS_RULE)
        unmet = ContractResult.unmet(1, [rule])
        assert unmet.incomplete and unmet.value == 1

        bad = ContractResult.invalid([IntegrityIssue("id", "bad", IssueKind.STRUCTURAL)])
        assert bad.structural and not bad.incomplete
        assert bad.to_dict()["errors"][0]["field"] == "id"

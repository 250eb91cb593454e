"""Tests for subtitle and episode integrity reports."""

from lexispine.contracts.integrity import (
    check_episode_integrity,
    check_subtitle_integrity,
    check_word_integrity,
)
from lexispine.contracts.issues import IssueKind

from tests._support.rows import normalized_sense_row, subtitle_row, word_row

MEDIA = "show-s01e01"


class TestWordIntegrity:
    def test_missing_word(self):
        report = check_word_integrity("บ้าน", None)
        assert not report.passed
        assert report.issues[0].kind is IssueKind.MISSING

    def test_word_without_senses_fails(self):
        report = check_word_integrity("บ้าน", word_row(g2p="baan4"), [])
        assert not report.passed
        assert report.issues[0].field == "word.senses"

    def test_valid(self):
        report = check_word_integrity("บ้าน", word_row(), [normalized_sense_row()])
        assert report.passed
        assert report.sense_count == 1

    def test_malformed_sense(self):
        report = check_word_integrity("บ้าน", word_row(), [{"id": 1}])
        assert not report.passed
        assert report.issues[0].field == "word.senses[0].definition_th"


class TestSubtitleIntegrity:
    def test_checks_every_token_once(self):
        row = subtitle_row(MEDIA, 1, "ไปบ้านบ้าน", ["ไป", "บ้าน", "บ้าน"])
        report = check_subtitle_integrity(
            row,
            words={"บ้าน": word_row()},
            senses={"บ้าน": [normalized_sense_row()]},
        )
        assert not report.passed
        assert [w.word_th for w in report.words] == ["ไป", "บ้าน"]
        assert report.failed_words == ["ไป"]

    def test_malformed_subtitle(self):
        row = subtitle_row(MEDIA, 1, "ไป")
        row["end_sec_th"] = 0
        report = check_subtitle_integrity(row, {}, {})
        assert not report.passed
        assert report.subtitle_id == f"{MEDIA}_1"
        assert report.words == []


class TestEpisodeIntegrity:
    def test_counts(self):
        good = subtitle_row(MEDIA, 1, "บ้าน", ["บ้าน"])
        bad = subtitle_row(MEDIA, 2, "ไป", ["ไป"])
        report = check_episode_integrity(
            MEDIA,
            [good, bad],
            words={"บ้าน": word_row()},
            senses={"บ้าน": [normalized_sense_row()]},
        )
        assert report.to_dict() == {
            "media_id": MEDIA,
            "passed": False,
            "subtitle_count": 2,
            "passed_subtitles": 1,
            "failed_subtitles": 1,
        }

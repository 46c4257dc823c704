"""Tests for loading the season reference score table."""

import json

import pytest

from models import ScoreRecord
from services.captions import CaptionKey
from services.reference_table import (
    ReferenceScoreTable,
    parse_result_sheet,
    record_from_mapping,
    seed_reference_scores,
)

RESULT_SHEET = "\n".join([
    "Corps\tBrass\tPercussion\tGuard\tVisual\tGE\tTotal",
    "Blue Devils\t19.1\t18.9\t18.7\t19.0\t38.5\t98.25",
    "Short Line\t85.0",
    "Partial Scores\t10.0\t9.0\t8.0\t7.0\t6.0\t50.0",
    "no tabs on this line",
    "Total\t1\t2\t3\t4\t5\t99",
])


class TestRecordParsing:
    """Tests for individual record layouts."""

    def test_export_layout(self):
        record = record_from_mapping({"corps": "Alpha", "score": 95.5, "captions": {"ge1": 19.0}})

        assert record.entity_name == "Alpha"
        assert record.total_score == 95.5
        assert record.sub_score(CaptionKey.GE1) == 19.0

    def test_column_layout(self):
        record = record_from_mapping({
            "entity_name": "Alpha", "total_score": 90, "category_scores": {"musicbrass": 18}, "season": 2024
        })

        assert record.sub_score(CaptionKey.MUSIC_BRASS) == 18.0
        assert record.season == 2024

    def test_coarse_caption_keys_land_on_detailed_keys(self):
        record = record_from_mapping({"corps": "Alpha", "score": 90, "captions": {"brass": 17, "visual": 16}})

        assert record.sub_score(CaptionKey.MUSIC_BRASS) == 17.0
        assert record.sub_score(CaptionKey.VISUAL_PROFICIENCY) == 16.0

    @pytest.mark.parametrize("captions", [
        {"brass": 15, "musicbrass": 18},
        {"musicbrass": 18, "brass": 15},
    ])
    def test_detailed_key_beats_alias(self, captions):
        record = record_from_mapping({"corps": "Alpha", "score": 90, "captions": captions})
        assert record.sub_score(CaptionKey.MUSIC_BRASS) == 18.0

    def test_bad_captions_ignored(self):
        record = record_from_mapping({"corps": "Alpha", "score": 90, "captions": {"tuba": 5, "ge1": "n/a"}})
        assert dict(record.category_scores) == {}

    def test_missing_name_rejected(self):
        with pytest.raises(ValueError):
            record_from_mapping({"score": 90})


class TestResultSheet:
    """Tests for tab-separated championship result sheets."""

    def test_parse(self):
        records = parse_result_sheet(RESULT_SHEET)

        assert [r.entity_name for r in records] == ["Blue Devils", "Short Line"]

        blue_devils = records[0]
        assert blue_devils.total_score == 98.25
        assert dict(blue_devils.category_scores) == {
            CaptionKey.MUSIC_BRASS: 19.1,
            CaptionKey.MUSIC_PERCUSSION: 18.9,
            CaptionKey.COLOR_GUARD: 18.7,
            CaptionKey.VISUAL_PROFICIENCY: 19.0,
            CaptionKey.GE1: 38.5,
        }

    def test_short_line_has_total_only(self):
        short = parse_result_sheet(RESULT_SHEET)[1]
        assert short.total_score == 85.0
        assert dict(short.category_scores) == {}

    def test_table_from_sheet(self):
        table = ReferenceScoreTable.from_result_sheet(RESULT_SHEET)
        assert len(table) == 2
        assert "blue devils" in table


class TestReferenceScoreTable:
    """Tests for lookup, ranking and persistence."""

    def test_lookup_is_case_insensitive(self, reference_table):
        assert reference_table.lookup("RIVERSIDE").entity_name == "Riverside"
        assert reference_table.lookup("nobody") is None
        assert reference_table.lookup(None) is None

    def test_duplicates_keep_first(self):
        table = ReferenceScoreTable.from_json([
            {"corps": "Alpha", "score": 90},
            {"corps": "alpha", "score": 10},
        ])
        assert table.lookup("Alpha").total_score == 90

    def test_ranked_is_stable(self):
        table = ReferenceScoreTable.from_json([
            {"corps": "First", "score": 80},
            {"corps": "Top", "score": 90},
            {"corps": "Second", "score": 80},
        ])
        assert [r.entity_name for r in table.ranked()] == ["Top", "First", "Second"]

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "scores.json"
        path.write_text(json.dumps([{"corps": "Alpha", "score": 91.5, "captions": {"ge2": 18}}]), encoding="utf-8")

        table = ReferenceScoreTable.from_json_file(path)

        assert table.lookup("Alpha").sub_score(CaptionKey.GE2) == 18.0

    def test_seed_and_load(self, db, reference_table):
        inserted = seed_reference_scores(db, reference_table.records)

        assert inserted == len(reference_table)
        assert db.query(ScoreRecord).count() == inserted

        loaded = ReferenceScoreTable.load(db)
        riverside = loaded.lookup("Riverside")
        assert riverside.total_score == 88.0
        assert riverside.sub_score(CaptionKey.MUSIC_BRASS) == 18.0
        assert [r.entity_name for r in loaded.ranked()] == [r.entity_name for r in reference_table.ranked()]

    def test_load_filters_by_season(self, db):
        seed_reference_scores(db, [
            record_from_mapping({"corps": "Alpha", "score": 90, "season": 2023}),
            record_from_mapping({"corps": "Alpha", "score": 92, "season": 2024}),
        ])

        assert ReferenceScoreTable.load(db, season=2024).lookup("Alpha").total_score == 92

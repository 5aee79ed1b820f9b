"""Tests for component ID normalization and duplicate grouping keys."""

import pytest

from gear_catalog.catalog.identity import (
    base_model,
    compute_component_id,
    create_component_id,
    grouping_key,
    key_from_marker_id,
    marker_id_for_key,
    resolve_id_fields,
)
from gear_catalog.catalog.models import MasterComponent


# =============================================================================
# compute_component_id
# =============================================================================


class TestComputeComponentId:

    def test_joins_and_slugifies(self):
        assert compute_component_id(["SRAM", "GX Eagle", "XG-1275"]) == "sram-gx-eagle-xg-1275"

    def test_all_missing_returns_none(self):
        assert compute_component_id([None, None, None]) is None

    def test_skips_empty_fields(self):
        assert compute_component_id(["Shimano", "", "RD-M8100-SGS"]) == "shimano-rd-m8100-sgs"

    def test_collapses_separator_runs_and_trims(self):
        assert compute_component_id(["  Fox ", "36 / Factory", '29" 160mm!']) == "fox-36-factory-29-160mm"

    def test_punctuation_only_returns_none(self):
        assert compute_component_id(["--", " ", "!!"]) is None

    def test_non_string_values_are_rendered(self):
        assert compute_component_id(["Race Face", 2024]) == "race-face-2024"

    def test_is_deterministic(self):
        fields = ["Maxxis", "Assegai", "29x2.5"]
        assert compute_component_id(fields) == compute_component_id(list(fields))


class TestCreateComponentId:

    def test_base_profile(self):
        component = {"brand": "SRAM", "name": "Cassette", "model": "XG-1275", "size": "10-52T"}
        assert create_component_id(component) == "sram-cassette-xg-1275"

    def test_sized_profile(self):
        component = {"brand": "WTB", "name": "Saddle", "model": "Volt", "size": "142mm"}
        assert create_component_id(component, "sized") == "wtb-volt-142mm"

    def test_explicit_field_list(self):
        component = {"brand": "SRAM", "series": "GX Eagle", "name": "Chain"}
        assert create_component_id(component, ["brand", "series", "name"]) == "sram-gx-eagle-chain"

    def test_name_only_component(self):
        assert create_component_id({"name": "Frame"}) == "frame"

    def test_unknown_profile_raises(self):
        with pytest.raises(ValueError, match="Unknown id field profile"):
            resolve_id_fields("wheels")


# =============================================================================
# base_model / grouping_key
# =============================================================================


class TestBaseModel:

    @pytest.mark.parametrize("model,expected", [
        ("RD-M8100-GS", "RD-M8100"),
        ("RD-M8100-SGS", "RD-M8100"),
        ("RD-M6100-sgs", "RD-M6100"),
        ("Force AXS-long", "Force AXS"),
        ("Force AXS-Medium", "Force AXS"),
        ("Apex-SHORT", "Apex"),
    ])
    def test_strips_variant_suffixes(self, model, expected):
        assert base_model(model) == expected

    def test_suffix_must_be_trailing(self):
        assert base_model("GS-Pro") == "GS-Pro"

    def test_strips_only_one_suffix(self):
        assert base_model("Cage-long-short") == "Cage-long"

    def test_unlisted_suffixes_are_kept(self):
        assert base_model("X01-xl") == "X01-xl"
        assert base_model("RD-M8100-m") == "RD-M8100-m"

    def test_missing_model(self):
        assert base_model(None) == ""


class TestGroupingKey:

    def test_full_key(self):
        component = MasterComponent(
            id="x", name="Fork", brand="RockShox", model="Lyrik Ultimate RC2", size='29", 160mm'
        )
        assert grouping_key(component) == 'Fork|RockShox|Lyrik Ultimate RC2|29", 160mm'

    def test_missing_size_uses_no_size(self):
        component = MasterComponent(id="x", name="Rear Derailleur", brand="Shimano", model="RD-M8100-SGS")
        assert grouping_key(component) == "Rear Derailleur|Shimano|RD-M8100|no-size"

    def test_missing_brand_renders_empty(self):
        component = MasterComponent(id="x", name="Grips", model="Lock-On")
        assert grouping_key(component) == "Grips||Lock-On|no-size"


class TestMarkerIds:

    def test_slash_is_escaped(self):
        key = 'Tire|Maxxis|Minion DHF|27.5/29"'
        doc_id = marker_id_for_key(key)
        assert "/" not in doc_id
        assert key_from_marker_id(doc_id) == key

    def test_plain_key_is_unchanged(self):
        key = "Rear Derailleur|Shimano|RD-M8100|no-size"
        assert marker_id_for_key(key) == key

    def test_literal_escape_sequence_survives(self):
        key = "Odd|Brand|100%2F|no-size"
        assert key_from_marker_id(marker_id_for_key(key)) == key

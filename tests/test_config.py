"""
Unit Tests for Configuration

Tests for merging, validation and the typed engine configuration.
"""

import logging

import pandas as pd
import pytest

from grading_core.config_schema import (
    DAYCARE_INDICATORS,
    DEPARTMENT_SUBJECTS,
    get_default_config,
    merge_config,
    resolve_scale_ranges,
    unknown_keys,
)
from grading_core.engine_config import build_subject_list, load_engine_config, resolve_facilitators
from grading_core.models import (
    AggregatePolicy,
    CriterionScale,
    Department,
    GradeRange,
    GradeThreshold,
    NormScale,
)
from grading_core.validators import (
    ConfigError,
    check_criterion_ranges,
    check_norm_ladder,
    validate_config,
    validate_scores,
    validate_students,
)


class TestMergeConfig:
    """Tests for merging user configuration with defaults."""

    def test_merge_when_empty_then_defaults(self):
        assert merge_config({}) == get_default_config()

    def test_merge_when_nested_key_given_then_siblings_kept(self):
        merged = merge_config({"promotion": {"cutoff_value": 30}})
        assert merged["promotion"]["cutoff_value"] == 30
        assert merged["promotion"]["min_attendance"] == 45

    def test_merge_when_early_childhood_partial_then_other_scale_kept(self):
        merged = merge_config({"grading": {"early_childhood": {"core": "5_point"}}})
        assert merged["grading"]["early_childhood"] == {"core": "5_point", "indicators": "3_point"}
        assert len(merged["grading"]["thresholds"]) == 9

    def test_merge_when_unknown_keys_then_dropped_and_reported(self):
        user_config = {"colour_scheme": "dark", "promotion": {"bonus": 1}}
        merged = merge_config(user_config)
        assert "colour_scheme" not in merged
        assert "bonus" not in merged["promotion"]
        assert unknown_keys(user_config) == ["colour_scheme", "promotion.bonus"]

    def test_merge_when_called_then_defaults_not_mutated(self):
        merged = merge_config({})
        merged["promotion"]["cutoff_value"] = 1
        assert get_default_config()["promotion"]["cutoff_value"] == 36


class TestResolveScaleRanges:

    def test_resolve_when_preset_name_then_preset_ranges(self):
        assert [r["symbol"] for r in resolve_scale_ranges("core", "3_point")] == ["A", "P", "D"]
        assert [r["symbol"] for r in resolve_scale_ranges("indicators", None)] == ["C", "S", "N"]

    def test_resolve_when_custom_ranges_then_returned(self):
        ranges = [{"symbol": "Y", "min": 50, "max": 100}, {"symbol": "N", "min": 0, "max": 49}]
        assert resolve_scale_ranges("core", {"ranges": ranges}) == ranges
        assert resolve_scale_ranges("core", ranges) == ranges

    def test_resolve_when_unknown_preset_then_raises_error(self):
        with pytest.raises(KeyError):
            resolve_scale_ranges("core", "7_point")


class TestValidators:
    """Tests for the ladder and range checks."""

    def test_ladder_when_default_then_no_problems(self):
        ladder = [(t["symbol"], t["z"]) for t in get_default_config()["grading"]["thresholds"]]
        assert check_norm_ladder(ladder) == []

    def test_ladder_when_empty_then_problem(self):
        assert check_norm_ladder([]) == ["Grading ladder has no grades defined"]

    def test_ladder_when_not_decreasing_then_problem(self):
        problems = check_norm_ladder([("A", 1.0), ("B", 1.5), ("C", None)])
        assert any("strictly decrease" in p for p in problems)

    def test_ladder_when_catch_all_not_last_then_problem(self):
        problems = check_norm_ladder([("A", None), ("B", 0.0)])
        assert any("Only the last grade" in p for p in problems)

    def test_ladder_when_duplicate_symbol_then_problem(self):
        problems = check_norm_ladder([("A", 1.0), ("A", 0.0)])
        assert any("Duplicate" in p for p in problems)

    def test_ranges_when_contiguous_whole_marks_then_no_problems(self):
        assert check_criterion_ranges([("A", 70, 100), ("P", 40, 69), ("D", 0, 39)]) == []

    def test_ranges_when_gap_then_problem(self):
        problems = check_criterion_ranges([("A", 70, 100), ("P", 40, 60), ("D", 0, 39)])
        assert any("Gap" in p for p in problems)

    def test_ranges_when_overlap_then_problem(self):
        problems = check_criterion_ranges([("A", 60, 100), ("P", 40, 69), ("D", 0, 39)])
        assert any("overlap" in p for p in problems)

    def test_ranges_when_top_not_covered_then_problem(self):
        problems = check_criterion_ranges([("A", 50, 90), ("D", 0, 49)])
        assert any("not covered" in p for p in problems)

    def test_ranges_when_min_above_max_then_problem(self):
        problems = check_criterion_ranges([("A", 100, 50), ("D", 0, 49)])
        assert any("above max" in p for p in problems)


class TestValidateConfig:

    def test_validate_when_defaults_then_no_issues(self):
        assert validate_config(get_default_config()) == []

    def test_validate_when_unknown_department_then_error(self):
        config = merge_config({"department": "Senior High"})
        errors = [i for i in validate_config(config) if i["type"] == "error"]
        assert errors and "Unknown department" in errors[0]["message"]

    def test_validate_when_bands_not_increasing_then_error(self):
        config = merge_config({"categories": {"bands": [
            {"label": "Distinction", "max_aggregate": 24},
            {"label": "Credit", "max_aggregate": 12},
        ]}})
        assert any("strictly increasing" in i["message"] for i in validate_config(config))

    def test_validate_when_remark_missing_then_warning(self):
        config = get_default_config()
        del config["grading"]["remarks"]["F9"]
        issues = validate_config(config)
        assert [i["type"] for i in issues] == ["warning"]

    def test_validate_when_unknown_policy_then_error(self):
        config = merge_config({"promotion": {"partial_aggregate": "average"}})
        assert any(i["type"] == "error" for i in validate_config(config))

    def test_validate_when_bad_preset_then_error(self):
        config = merge_config({"grading": {"early_childhood": {"indicators": "4_point"}}})
        assert any("4_point" in i["message"] for i in validate_config(config))

    def test_validate_when_blank_facilitator_then_warning(self):
        config = merge_config({"facilitators": {"Mathematics": "  "}})
        issues = validate_config(config)
        assert issues == [{"type": "warning", "message": "Blank facilitator for: Mathematics"}]


class TestValidateRoster:

    def test_validate_scores_when_text_and_out_of_range_then_reported(self):
        df = pd.DataFrame({"Mathematics": [55, "abc", 120, None]})

        issues = validate_scores(df, ["Mathematics"], get_default_config())

        assert [(i["row"], i["type"]) for i in issues] == [(1, "error"), (2, "warning")]

    def test_validate_students_when_duplicate_id_then_error(self):
        issues = validate_students([
            {"id": "P1", "name": "Ama", "admission_id": "P1"},
            {"id": "P1", "name": "", "admission_id": ""},
        ])
        types = sorted(i["type"] for i in issues)
        assert types == ["error", "warning", "warning"]

    def test_validate_students_when_empty_then_error(self):
        assert validate_students([])[0]["type"] == "error"


class TestScales:

    def test_norm_scale_when_invalid_ladder_then_raises_config_error(self):
        with pytest.raises(ConfigError) as exc_info:
            NormScale(thresholds=(GradeThreshold("A", 0.0), GradeThreshold("B", 1.0)))
        assert exc_info.value.problems

    def test_criterion_scale_when_unsorted_then_stored_best_first(self):
        scale = CriterionScale(ranges=(
            GradeRange("D", 0, 39),
            GradeRange("A", 70, 100),
            GradeRange("P", 40, 69),
        ))
        assert scale.symbols == ["A", "P", "D"]
        assert scale.grade_point("D") == 3

    def test_criterion_scale_when_gap_then_raises_config_error(self):
        with pytest.raises(ConfigError):
            CriterionScale(ranges=(GradeRange("A", 50, 100), GradeRange("D", 0, 40)))


class TestBuildSubjectList:

    def test_build_when_custom_and_disabled_then_applied_in_order(self):
        subjects = build_subject_list(
            Department.LOWER_BASIC,
            custom_subjects=["History", "Mathematics"],
            disabled_subjects=["Physical Education"],
        )
        core = [s for s in DEPARTMENT_SUBJECTS["Lower Basic School"] if s != "Physical Education"]
        assert subjects == core + ["History"]

    def test_build_when_early_childhood_then_indicators_appended(self):
        subjects = build_subject_list(Department.DAYCARE, active_indicators=DAYCARE_INDICATORS[:2])
        assert subjects[-2:] == DAYCARE_INDICATORS[:2]

    def test_build_when_not_early_childhood_then_indicators_ignored(self):
        subjects = build_subject_list(Department.JUNIOR_HIGH, active_indicators=DAYCARE_INDICATORS)
        assert subjects == DEPARTMENT_SUBJECTS["Junior High School"]


class TestResolveFacilitators:

    def test_resolve_when_mapping_staff_and_nothing_then_in_that_order(self):
        resolved = resolve_facilitators(
            ["Mathematics", "Science", "French"],
            {"Mathematics": "Mr. Owusu"},
            [
                {"name": "Mrs. Mensah", "subjects": ["Mathematics", "Science"]},
                {"name": "Mr. Darko", "subjects": ["Science"]},
            ],
        )
        assert resolved == {
            "Mathematics": "Mr. Owusu",
            "Science": "Mrs. Mensah",
            "French": "Unassigned",
        }


class TestLoadEngineConfig:
    """Tests for building the typed configuration."""

    def test_load_when_defaults_then_norm_scale_for_every_subject(self, jhs_config):
        assert jhs_config.department is Department.JUNIOR_HIGH
        assert jhs_config.subjects == tuple(DEPARTMENT_SUBJECTS["Junior High School"])
        assert all(isinstance(s, NormScale) for s in jhs_config.scales.values())
        assert jhs_config.promotion.partial_aggregate is AggregatePolicy.SUM_AVAILABLE
        assert jhs_config.worst_grade_point == 9

    def test_load_when_early_childhood_then_core_and_indicator_scales(self):
        config = load_engine_config({
            "department": "Nursery",
            "class_name": "Nursery 1",
            "custom_subjects": ["Rhymes"],
            "active_indicators": ["Recognises Colours"],
        })
        assert config.scales["Numeracy"].symbols == ["A", "P", "D"]
        assert config.scales["Rhymes"].symbols == ["A", "P", "D"]
        assert config.scales["Recognises Colours"].symbols == ["C", "S", "N"]

    def test_load_when_invalid_then_raises_config_error_listing_problems(self):
        with pytest.raises(ConfigError) as exc_info:
            load_engine_config({"department": "Senior High", "promotion": {"best_of": 0}})
        assert len(exc_info.value.problems) == 2

    def test_load_when_unknown_key_then_warning_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="grading_core.engine_config"):
            load_engine_config({"theme": "dark"})
        assert "theme" in caplog.text

    def test_categorize_when_on_band_edge_then_inclusive(self, jhs_config):
        categories = jhs_config.categories
        assert categories.categorize(12) == "Distinction"
        assert categories.categorize(13) == "Credit"
        assert categories.categorize(36) == "Pass"
        assert categories.categorize(37) == "Fail"


class TestWrongTypedConfig:
    """Values of the wrong type are reported, never raised as raw errors."""

    BAD_CONFIGS = [
        {"promotion": {"cutoff_value": "36"}},
        {"promotion": {"best_of": "6"}},
        {"promotion": {"best_of": 5.5}},
        {"promotion": {"best_of": True}},
        {"promotion": {"min_attendance": None}},
        {"scale": {"min": "0"}},
        {"scale": {"decimal_places": "1"}},
        {"grading": {"thresholds": [{"symbol": "A1", "z": "1.6"}, {"symbol": "F9", "z": None}]}},
        {"grading": {"thresholds": "A1..F9"}},
        {"grading": {"early_childhood": "5_point"}},
        {"grading": {"early_childhood": {"core": 3}}},
        {"grading": {"early_childhood": {"core": {"ranges": [{"symbol": "A", "min": "0", "max": 100}]}}}},
        {"categories": {"bands": [{"label": "Distinction", "max_aggregate": "12"}]}},
        {"categories": {"bands": "Distinction"}},
        {"custom_subjects": "History"},
        {"disabled_subjects": [1, 2]},
        {"active_indicators": None},
        {"facilitators": ["Mr. Owusu"]},
        {"staff": {"name": "Mrs. Mensah"}},
        {"promotion": "strict"},
        {"department": ["Nursery"]},
    ]

    @pytest.mark.parametrize("user_config", BAD_CONFIGS)
    def test_validate_when_value_has_wrong_type_then_error_reported(self, user_config):
        # Act
        issues = validate_config(merge_config(user_config))

        # Assert
        assert any(issue["type"] == "error" for issue in issues)

    @pytest.mark.parametrize("user_config", BAD_CONFIGS)
    def test_load_when_value_has_wrong_type_then_raises_config_error(self, user_config):
        with pytest.raises(ConfigError) as exc_info:
            load_engine_config(user_config)
        assert exc_info.value.problems

    def test_load_when_best_of_fractional_then_message_names_setting(self):
        with pytest.raises(ConfigError) as exc_info:
            load_engine_config({"promotion": {"best_of": 5.5}})
        assert exc_info.value.problems == [
            "Promotion setting 'best_of' must be a whole number of at least 1"
        ]

    def test_load_when_config_not_an_object_then_raises_config_error(self):
        with pytest.raises(ConfigError):
            load_engine_config(["department", "Nursery"])

    def test_validate_when_cutoff_wrong_type_then_dependent_warning_skipped(self):
        config = merge_config({"promotion": {"cutoff_value": "36"}})
        messages = [issue["message"] for issue in validate_config(config)]
        assert messages == ["Promotion setting 'cutoff_value' must be a non-negative number"]

    def test_merge_when_early_childhood_not_an_object_then_kept_for_validation(self):
        merged = merge_config({"grading": {"early_childhood": "5_point"}})
        assert merged["grading"]["early_childhood"] == "5_point"
        assert len(merged["grading"]["thresholds"]) == 9

    def test_merge_when_section_not_an_object_then_kept_for_validation(self):
        assert merge_config({"promotion": "strict"})["promotion"] == "strict"

    def test_ladder_when_threshold_not_a_number_then_problem(self):
        problems = check_norm_ladder([("A", "1.0"), ("B", 0.0), ("C", None)])
        assert problems == ["Threshold for 'A' must be a number, got '1.0'"]

    def test_ranges_when_bound_not_a_number_then_problem(self):
        problems = check_criterion_ranges([("A", "50", 100), ("D", 0, 49)])
        assert problems == ["Range 'A' bounds must be numbers, got '50' and 100"]

    def test_norm_scale_when_threshold_not_a_number_then_raises_config_error(self):
        with pytest.raises(ConfigError):
            NormScale(thresholds=(GradeThreshold("A", "1.0"), GradeThreshold("B", None)))

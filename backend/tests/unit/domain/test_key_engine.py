"""Tests for KeyVersioningEngine.

Verifies:
- Custom keys are sorted descending and validated on total points
- Percentage -> points conversion
- Post-correction modification appends exactly one audit record
- Batch impact analysis, error-point grading, validation, diffing
- Cloning, adjustment suggestions and the change-history report
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gradekeys.domain.common.errors import ValidationError
from gradekeys.domain.grading.audit_log import InMemoryAuditLog
from gradekeys.domain.grading.key_engine import (
    KeyVersioningEngine,
    format_boundary,
    is_modified_after_correction,
    mark_as_modified_after_correction,
)
from gradekeys.domain.grading.models import (
    DEFAULT_ROUNDING_RULE,
    AffectedGrade,
    GradeBoundary,
    GradingKeyType,
    RoundingRule,
    RoundingType,
    TargetShare,
)
from gradekeys.domain.grading.presets import GERMAN_1_6_PRESET
from gradekeys.domain.grading.resolver import calculate_grade

from tests.unit.use_cases.conftest import (
    T0,
    FakeClock,
    SequentialIds,
    make_boundaries,
    make_entry,
    make_key,
)


# ── Helpers ──────────────────────────────────────────────────────────


@pytest.fixture
def log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def eng(log) -> KeyVersioningEngine:
    return KeyVersioningEngine(log, clock=FakeClock(), id_factory=SequentialIds("id"))


LOWERED = make_boundaries([(1, 90), (2, 80), (3, 70), (4, 60), (5, 50), (6, 0)])


# ── Construction ─────────────────────────────────────────────────────


class TestCreateCustomKey:

    def test_sorts_boundaries_descending(self, eng):
        unordered = make_boundaries([(6, 0), (2, 81), (1, 92), (4, 60), (3, 70), (5, 50)])

        key = eng.create_custom_grading_key("Mathe", 100, unordered)

        assert [b.grade for b in key.grade_boundaries] == [1, 2, 3, 4, 5, 6]
        assert key.type == GradingKeyType.PERCENTAGE
        assert key.customizable is True
        assert key.modified_after_correction is False
        assert key.id == "id-1"

    def test_default_rounding_applied(self, eng):
        key = eng.create_custom_grading_key("Mathe", 100, make_boundaries())
        assert key.rounding_rule == DEFAULT_ROUNDING_RULE

    def test_engine_default_rounding_configurable(self, log):
        rule = RoundingRule(RoundingType.DOWN, 0)
        engine = KeyVersioningEngine(log, default_rounding=rule)
        assert engine.create_custom_grading_key("X", 10, make_boundaries()).rounding_rule == rule

    def test_equal_thresholds_keep_input_order(self, eng):
        boundaries = make_boundaries([("a", 50), ("b", 50), ("c", 0)])
        key = eng.create_custom_grading_key("Tie", 100, boundaries)
        assert [b.grade for b in key.grade_boundaries] == ["a", "b", "c"]

    @pytest.mark.parametrize("total", [0, -10])
    def test_non_positive_total_rejected(self, eng, total):
        with pytest.raises(ValidationError):
            eng.create_custom_grading_key("Bad", total, make_boundaries())


class TestPresets:

    def test_create_preset(self, eng):
        preset = eng.create_preset("Pass/Fail", "Two grades", "custom", make_boundaries([("P", 50), ("F", 0)]))
        assert preset.id == "id-1"
        assert len(preset.boundaries) == 2
        assert preset.default_rounding == DEFAULT_ROUNDING_RULE

    def test_key_from_preset(self, eng):
        key = eng.create_key_from_preset(GERMAN_1_6_PRESET, 60, name="Bio")
        assert key.name == "Bio"
        assert key.total_points == 60
        assert key.preset_id == "german-1-6-standard"
        assert key.grade_boundaries == GERMAN_1_6_PRESET.boundaries


class TestConvertToPointsBased:

    def test_min_points_rounded_up(self, eng):
        key = eng.convert_to_points_based(make_key(), 50)

        assert [b.min_points for b in key.grade_boundaries] == [46, 41, 35, 30, 25, 0]
        assert key.type == GradingKeyType.POINTS
        assert key.total_points == 50

    def test_percentages_and_order_kept(self, eng):
        source = make_key()
        key = eng.convert_to_points_based(source, 50)
        assert [b.min_percentage for b in key.grade_boundaries] == [
            b.min_percentage for b in source.grade_boundaries
        ]

    def test_converted_key_grades_like_source(self, eng):
        key = eng.convert_to_points_based(make_key(total_points=50), 50)
        assert calculate_grade(41, key).grade == 2
        assert calculate_grade(40, key).grade == 3


# ── Mutation & Audit ─────────────────────────────────────────────────


class TestModifyAfterCorrection:

    def test_returns_modified_key(self, eng):
        old = make_key()
        new = eng.modify_grading_key_after_correction(old, LOWERED, "too strict", "t1")

        assert new.grade_boundaries == LOWERED
        assert new.modified_after_correction is True
        assert new.id == old.id
        assert old.modified_after_correction is False

    def test_each_call_appends_one_record(self, eng):
        old = make_key()
        first = eng.modify_grading_key_after_correction(old, LOWERED, "r1", "t1")
        assert len(eng.get_change_history(old.id)) == 1

        eng.modify_grading_key_after_correction(first, make_boundaries(), "r2", "t2")
        history = eng.get_change_history(old.id)

        assert len(history) == 2
        assert [r.reason for r in history] == ["r1", "r2"]
        assert history[0].previous_key == old
        assert history[0].new_key == first
        assert history[0].timestamp == T0

    def test_history_of_unknown_key_is_empty(self, eng):
        assert eng.get_change_history("never-modified") == ()

    def test_engines_do_not_share_history(self):
        a = KeyVersioningEngine(InMemoryAuditLog())
        b = KeyVersioningEngine(InMemoryAuditLog())
        a.modify_grading_key_after_correction(make_key(), LOWERED)
        assert b.get_change_history("key-1") == ()

    def test_build_change_record_does_not_append(self, eng, log):
        old = make_key()
        record = eng.build_change_record(old, LOWERED, "curve", "t1")

        assert record.id == "id-1"
        assert record.timestamp == T0
        assert record.previous_key == old
        assert record.new_key.grade_boundaries == LOWERED
        assert record.new_key.modified_after_correction is True
        assert log.get_history(old.id) == ()


class TestCloneWithModifications:

    def test_fresh_id_and_flag_reset(self, eng):
        source = mark_as_modified_after_correction(make_key())

        clone = eng.clone_with_modifications(source, {"name": "Copy", "total_points": 60})

        assert clone.id == "id-1"
        assert clone.name == "Copy"
        assert clone.total_points == 60
        assert clone.modified_after_correction is False
        assert clone.grade_boundaries == source.grade_boundaries

    def test_unknown_field_rejected(self, eng):
        with pytest.raises(ValidationError, match="colour"):
            eng.clone_with_modifications(make_key(), {"colour": "red"})


# ── Impact Analysis ──────────────────────────────────────────────────


class TestRecalculateGradesForBatch:

    def test_same_key_changes_nothing(self, eng):
        corrections = [make_entry(f"c{i}", p) for i, p in enumerate([0, 45, 80, 95])]
        key = make_key()
        assert eng.recalculate_grades_for_batch(corrections, key, key).change_count == 0

    def test_lists_changed_candidates(self, eng):
        corrections = [make_entry("anna", 80), make_entry("ben", 91), make_entry("cem", 20)]
        new_key = make_key(grade_boundaries=LOWERED)

        result = eng.recalculate_grades_for_batch(corrections, make_key(), new_key)

        assert result.affected_grades == (
            AffectedGrade(candidate_id="anna", old_grade=3, new_grade=2),
            AffectedGrade(candidate_id="ben", old_grade=2, new_grade=1),
        )


class TestConvertErrorPoints:

    def test_deducts_from_max(self, eng):
        result = eng.convert_error_points_to_grade(0, 15, 100, make_key())
        assert result.calculated_points == 85
        assert result.grade == 2

    def test_clamped_at_zero(self, eng):
        result = eng.convert_error_points_to_grade(0, 120, 100, make_key())
        assert result.calculated_points == 0
        assert result.grade == 6


# ── Validation & Diffing ─────────────────────────────────────────────


class TestValidateGradingKey:

    def test_valid_key(self):
        assert KeyVersioningEngine.validate_grading_key(make_key()).valid

    def test_out_of_order(self):
        key = make_key(grade_boundaries=make_boundaries([(1, 70), (2, 81), (3, 0)]))
        result = KeyVersioningEngine.validate_grading_key(key)
        assert not result.valid
        assert result.errors == (
            "Boundary order error: Grade 1 (70%) should be higher than Grade 2 (81%)",
        )

    def test_equal_thresholds_are_an_error(self):
        key = make_key(grade_boundaries=make_boundaries([(1, 50), (2, 50), (3, 0)]))
        assert len(KeyVersioningEngine.validate_grading_key(key).errors) == 1

    def test_single_boundary(self):
        key = make_key(grade_boundaries=make_boundaries([(1, 0)]))
        errors = KeyVersioningEngine.validate_grading_key(key).errors
        assert errors == ("Grading key must have at least 2 grade boundaries",)

    def test_lowest_must_start_at_zero(self):
        key = make_key(grade_boundaries=make_boundaries([(1, 50), (2, 10)]))
        errors = KeyVersioningEngine.validate_grading_key(key).errors
        assert any("0%" in e for e in errors)

    def test_empty_key_reports_count_only(self):
        errors = KeyVersioningEngine.validate_grading_key(make_key(grade_boundaries=())).errors
        assert len(errors) == 1
        assert "at least 2" in errors[0]

    def test_points_key_skips_order_check(self, eng):
        key = eng.convert_to_points_based(make_key(), 50)
        assert KeyVersioningEngine.validate_grading_key(key).valid


class TestCompareGradingKeys:

    def test_identical(self):
        assert KeyVersioningEngine.compare_grading_keys(make_key(), make_key()).is_same

    def test_name_change(self):
        result = KeyVersioningEngine.compare_grading_keys(make_key(), make_key(name="Neu"))
        assert result.changes == ('Name changed: "Test Key" → "Neu"',)

    def test_all_changes(self):
        other = make_key(
            name="Neu",
            type=GradingKeyType.POINTS,
            grade_boundaries=LOWERED,
            rounding_rule=RoundingRule(RoundingType.UP, 0),
        )
        changes = KeyVersioningEngine.compare_grading_keys(make_key(), other).changes
        assert changes[1] == "Type changed: percentage → points"
        assert changes[2:] == ("Grade boundaries modified", "Rounding rule changed")


# ── Advisory ─────────────────────────────────────────────────────────


class TestSuggestAdjustments:

    def test_no_corrections(self, eng):
        result = eng.suggest_grading_key_adjustments([], make_key())
        assert result.reasoning == ("No corrections to analyse",)
        assert result.suggestion == make_key().grade_boundaries

    def test_describes_distribution(self, eng):
        corrections = [make_entry("a", 95), make_entry("b", 85), make_entry("c", 86)]
        result = eng.suggest_grading_key_adjustments(corrections, make_key())

        assert result.distribution == {"1": 1, "2": 2, "3": 0, "4": 0, "5": 0, "6": 0}
        assert result.reasoning[0].startswith("Current distribution: 1:1, 2:2")
        assert result.suggestion == make_key().grade_boundaries

    def test_flags_low_skew(self, eng):
        corrections = [make_entry(f"c{i}", 10) for i in range(5)]
        result = eng.suggest_grading_key_adjustments(corrections, make_key())
        assert any("lower grades" in r for r in result.reasoning)

    def test_target_distribution_moves_thresholds(self, eng):
        key = make_key(grade_boundaries=make_boundaries([(1, 90), (2, 50), (3, 0)]))
        corrections = [make_entry(f"c{p}", p) for p in (95, 85, 75, 65, 30)]
        targets = [TargetShare(1, 40), TargetShare(2, 40), TargetShare(3, 20)]

        result = eng.suggest_grading_key_adjustments(corrections, key, targets)

        assert [b.min_percentage for b in result.suggestion] == [85.0, 65.0, 0]

    def test_unreachable_target_keeps_current_key(self, eng):
        key = make_key(grade_boundaries=make_boundaries([(1, 90), (2, 50), (3, 0)]))
        corrections = [make_entry(f"c{i}", 70) for i in range(4)]
        targets = [TargetShare(1, 50), TargetShare(2, 50)]

        result = eng.suggest_grading_key_adjustments(corrections, key, targets)

        assert result.suggestion == key.grade_boundaries
        assert "keeping the current key" in result.reasoning[-1]


# ── Reporting & Helpers ──────────────────────────────────────────────


class TestExportChangeHistory:

    def test_empty(self, eng):
        assert eng.export_change_history("key-1") == "No changes recorded"

    def test_report_lists_each_change(self, eng):
        key = make_key()
        eng.modify_grading_key_after_correction(key, LOWERED, "Task 3 unclear", "Frau Weber")

        report = eng.export_change_history(key.id)

        assert "Grading Key Change History (ID: key-1)" in report
        assert "Change ID: id-1" in report
        assert f"Timestamp: {T0.isoformat()}" in report
        assert "Changed by: Frau Weber" in report
        assert "Reason: Task 3 unclear" in report
        assert "  - Grade boundaries modified" in report


class TestKeyHelpers:

    def test_modified_flag_helpers(self):
        key = make_key()
        assert not is_modified_after_correction(key)
        assert is_modified_after_correction(mark_as_modified_after_correction(key))

    def test_format_percentage_boundary(self):
        b = GradeBoundary(grade=2, display_value="2", min_percentage=81)
        assert format_boundary(b) == "Grade 2: 81%-100%"

    def test_format_points_boundary(self):
        b = GradeBoundary(grade=2, display_value="2", min_points=41, max_points=50.5)
        assert format_boundary(b, GradingKeyType.POINTS) == "Grade 2: 41-50.5 points"

    def test_timestamps_are_utc(self):
        eng_default = KeyVersioningEngine(InMemoryAuditLog())
        eng_default.modify_grading_key_after_correction(make_key(), LOWERED)
        record = eng_default.get_change_history("key-1")[0]
        assert record.timestamp.tzinfo == timezone.utc
        assert record.timestamp <= datetime.now(timezone.utc)

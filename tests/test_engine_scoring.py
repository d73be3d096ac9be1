"""
Risk analysis, quality scoring, recommendations and report assembly — pure
engine tests.

Covers:
  • classify_risk boundaries: 0.05 / 0.10 / 0.20 and counts 1 / 3
  • assess_risk over real matrices (uncovered, failing, Undefined)
  • normalize_score clamping and bad input, quality_label bands
  • compute_quality_metrics inputs
  • recommendation rules, stable type ordering
  • assemble_report: section flags, zero-requirement safety,
    four-requirement end-to-end scenario
"""

import dataclasses
import json
from datetime import datetime, timezone

import pytest

from tracehub.core.exceptions import NotFoundError
from tracehub.engine.coverage import CoverageSummary, summarize_coverage
from tracehub.engine.matrix import build_traceability_matrix
from tracehub.engine.quality import compute_quality_metrics, normalize_score, quality_label
from tracehub.engine.recommendations import (
    Recommendation,
    RecommendationArea,
    RecommendationType,
    generate_recommendations,
    sort_recommendations,
)
from tracehub.engine.report import ProjectSnapshot, ReportOptions, assemble_report
from tracehub.engine.risk import RiskLevel, assess_risk, classify_risk, compute_risk_score
from tracehub.engine.types import (
    ExecutionStatus,
    Priority,
    ProjectCounters,
    Requirement,
    TestCase,
    TestCaseType,
    TestSuite,
)

P, F = ExecutionStatus.PASSED, ExecutionStatus.FAILED
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
# Test helpers
# ═══════════════════════════════════════════════════════════════════════════

def _make_req(n, priority=Priority.MEDIUM, links=()):
    return Requirement(id=str(n), code=f"REQ-{n:03d}", name=f"Requirement {n}",
                       priority=priority, test_case_ids=[str(x) for x in links])


def _make_case(case_id, status=None, case_type=TestCaseType.MANUAL):
    return TestCase(id=str(case_id), name=f"Case {case_id}", type=case_type,
                    last_execution_status=status)


def _make_snapshot(reqs, cases):
    suites = [TestSuite(id="1", name="Main", test_cases=list(cases))]
    return ProjectSnapshot(project_id=7, requirements=reqs, suites=suites,
                           counters=ProjectCounters.from_suites(suites))


def _scenario_snapshot():
    """Critical, High, Medium, Low — only Medium is tested (1 passed, 1 failed)."""
    reqs = [
        _make_req(1, Priority.CRITICAL),
        _make_req(2, Priority.HIGH),
        _make_req(3, Priority.MEDIUM, links=[1, 2]),
        _make_req(4, Priority.LOW),
    ]
    return _make_snapshot(reqs, [_make_case(1, P), _make_case(2, F)])


# ═══════════════════════════════════════════════════════════════════════════
# Risk
# ═══════════════════════════════════════════════════════════════════════════

class TestRiskClassification:
    @pytest.mark.parametrize("score,expected", [
        (0.0, RiskLevel.LOW),
        (0.0499, RiskLevel.LOW),
        (0.05, RiskLevel.MEDIUM),
        (0.0999, RiskLevel.MEDIUM),
        (0.10, RiskLevel.HIGH),
        (0.1999, RiskLevel.HIGH),
        (0.20, RiskLevel.CRITICAL),
        (0.9, RiskLevel.CRITICAL),
    ])
    def test_score_bands_inclusive(self, score, expected):
        assert classify_risk(score, 0, 0, 10) == expected

    @pytest.mark.parametrize("uncovered,failing,expected", [
        (1, 0, RiskLevel.HIGH),
        (0, 1, RiskLevel.HIGH),
        (2, 2, RiskLevel.HIGH),
        (3, 0, RiskLevel.CRITICAL),
        (0, 3, RiskLevel.CRITICAL),
    ])
    def test_count_triggers(self, uncovered, failing, expected):
        assert classify_risk(0.0, uncovered, failing, 100) == expected

    def test_no_requirements_is_undefined(self):
        assert classify_risk(0.5, 5, 5, 0) == RiskLevel.UNDEFINED

    def test_weighted_score(self):
        assert compute_risk_score(2, 0, 10, 10) == pytest.approx(0.12)
        assert compute_risk_score(0, 1, 4, 2) == pytest.approx(0.2)
        assert compute_risk_score(3, 1, 3, 0) == pytest.approx(0.6)
        assert compute_risk_score(0, 0, 0, 0) == 0

    def test_two_uncovered_out_of_ten_is_high(self):
        score = compute_risk_score(2, 0, 10, 10)
        assert classify_risk(score, 2, 0, 10) == RiskLevel.HIGH


class TestAssessRisk:
    def test_uncovered_high_impact_out_of_ten(self):
        reqs = [_make_req(1, Priority.HIGH), _make_req(2, Priority.CRITICAL)]
        reqs += [_make_req(n, Priority.LOW, links=[n]) for n in range(3, 11)]
        cases = [_make_case(n, P) for n in range(3, 11)]
        matrix = build_traceability_matrix(reqs, [TestSuite("1", "S", test_cases=cases)])
        risk = assess_risk(matrix)
        assert risk.critical_uncovered_count == 2
        assert risk.critical_failing_count == 0
        assert risk.risk_score == pytest.approx(0.12)
        assert risk.risk_level == RiskLevel.HIGH

    def test_failing_ratio_exactly_twenty_percent_is_critical(self):
        reqs = [_make_req(1, Priority.HIGH, links=[1]), _make_req(2, Priority.HIGH, links=[2])]
        matrix = build_traceability_matrix(
            reqs, [TestSuite("1", "S", test_cases=[_make_case(1, F), _make_case(2, P)])]
        )
        risk = assess_risk(matrix)
        assert risk.risk_score == pytest.approx(0.2)
        assert risk.risk_level == RiskLevel.CRITICAL
        failing = risk.critical_failing[0]
        assert failing.requirement.code == "REQ-001"
        assert [tc.id for tc in failing.failing_tests] == ["1"]

    @pytest.mark.parametrize("uncovered_high,others", [(1, 2), (2, 4)])
    def test_uncovered_ratio_on_twenty_percent_line_is_critical(self, uncovered_high, others):
        # 0.6 * 1/3 and 0.6 * 2/6 are both exactly 0.20
        reqs = [_make_req(n, Priority.HIGH) for n in range(1, uncovered_high + 1)]
        reqs += [_make_req(n, Priority.LOW) for n in range(100, 100 + others)]
        risk = assess_risk(build_traceability_matrix(reqs, []))
        assert risk.risk_score == 0.2
        assert risk.risk_level == RiskLevel.CRITICAL

    def test_uncovered_ratio_below_twenty_percent_is_high(self):
        reqs = [_make_req(1, Priority.CRITICAL)] + [_make_req(n, Priority.LOW) for n in range(2, 5)]
        risk = assess_risk(build_traceability_matrix(reqs, []))
        assert risk.risk_score == pytest.approx(0.15)
        assert risk.risk_level == RiskLevel.HIGH

    def test_failing_ratio_over_three_requirements_is_critical(self):
        # 0.4 * 1/2 failing; the uncovered Low requirement adds nothing
        reqs = [
            _make_req(1, Priority.HIGH, links=[1]),
            _make_req(2, Priority.LOW, links=[2]),
            _make_req(3, Priority.LOW),
        ]
        cases = [_make_case(1, F), _make_case(2, P)]
        risk = assess_risk(build_traceability_matrix(reqs, [TestSuite("1", "S", test_cases=cases)]))
        assert risk.risk_score == 0.2
        assert risk.risk_level == RiskLevel.CRITICAL

    def test_score_is_rounded_onto_band_edges(self):
        assert compute_risk_score(1, 0, 3, 0) == 0.2
        assert compute_risk_score(1, 0, 6, 0) == 0.1
        assert compute_risk_score(0, 1, 8, 8) == 0.05
        assert classify_risk(compute_risk_score(0, 1, 8, 8), 0, 0, 8) == RiskLevel.MEDIUM

    def test_low_priority_failures_do_not_count(self):
        reqs = [_make_req(1, Priority.LOW, links=[1]), _make_req(2, Priority.MEDIUM)]
        matrix = build_traceability_matrix(
            reqs, [TestSuite("1", "S", test_cases=[_make_case(1, F)])]
        )
        risk = assess_risk(matrix)
        assert risk.critical_failing_count == 0
        assert risk.critical_uncovered_count == 0
        assert risk.risk_level == RiskLevel.LOW

    def test_empty_matrix_is_undefined(self):
        risk = assess_risk([])
        assert risk.risk_level == RiskLevel.UNDEFINED
        assert risk.to_dict()["risk_level"] == "Undefined"


# ═══════════════════════════════════════════════════════════════════════════
# Quality
# ═══════════════════════════════════════════════════════════════════════════

class TestQualityScore:
    def test_automation_overflow_clamps_to_five(self):
        assert normalize_score(150, scale_factor=0.8) == 5.0

    def test_automation_damping(self):
        assert normalize_score(80, scale_factor=0.8) == pytest.approx(3.2)

    @pytest.mark.parametrize("value", [-10, None, float("nan"), "n/a"])
    def test_bad_values_score_zero(self, value):
        assert normalize_score(value) == 0

    def test_full_coverage_scores_five(self):
        assert normalize_score(100) == pytest.approx(5.0)

    @pytest.mark.parametrize("score,label", [
        (5.0, "Excellent"), (4.5, "Excellent"), (4.49, "Good"), (3.5, "Good"),
        (2.5, "Fair"), (1.5, "Poor"), (1.49, "Critical"), (0, "Critical"),
    ])
    def test_quality_label_bands(self, score, label):
        assert quality_label(score) == label

    def test_metrics_from_coverage_and_counters(self):
        coverage = CoverageSummary(total_requirements=4, covered_requirements=3)
        counters = ProjectCounters(total_tests_count=10, executed_tests_count=8,
                                   pass_count=6, fail_count=2, automated_tests_count=15)
        metrics = compute_quality_metrics(coverage, counters)
        assert metrics.requirements.quality_score == pytest.approx(3.75)
        assert metrics.testing.pass_rate == pytest.approx(75.0)
        assert metrics.testing.quality_score == pytest.approx(3.75)
        assert metrics.automation.automation_rate == pytest.approx(150.0)
        assert metrics.automation.quality_score == 5.0
        assert metrics.overall_quality_score == pytest.approx((3.75 + 3.75 + 5.0) / 3)


# ═══════════════════════════════════════════════════════════════════════════
# Recommendations
# ═══════════════════════════════════════════════════════════════════════════

class TestRecommendations:
    def test_sort_is_stable_by_type(self):
        low = Recommendation(RecommendationType.LOW, RecommendationArea.AUTOMATION, "low")
        crit = Recommendation(RecommendationType.CRITICAL, RecommendationArea.EXECUTION, "crit")
        med1 = Recommendation(RecommendationType.MEDIUM, RecommendationArea.COVERAGE, "m1")
        med2 = Recommendation(RecommendationType.MEDIUM, RecommendationArea.EXECUTION, "m2")
        ordered = sort_recommendations([low, med1, crit, med2])
        assert [r.message for r in ordered] == ["crit", "m1", "m2", "low"]

    def test_critical_failure_listed_before_low_automation(self):
        reqs = [_make_req(1, Priority.CRITICAL, links=[1]), _make_req(2, Priority.LOW, links=[2])]
        snapshot = _make_snapshot(reqs, [_make_case(1, F), _make_case(2, P)])
        report = assemble_report(snapshot, now=NOW)
        types = [r.type for r in report.recommendations]
        assert types[0] == RecommendationType.CRITICAL
        assert types[-1] == RecommendationType.LOW
        assert report.recommendations[0].area == RecommendationArea.EXECUTION

    def test_healthy_project_has_no_recommendations(self):
        reqs = [_make_req(n, Priority.HIGH, links=[n]) for n in range(1, 4)]
        cases = [_make_case(n, P, TestCaseType.AUTOMATED) for n in range(1, 4)]
        report = assemble_report(_make_snapshot(reqs, cases), now=NOW)
        assert report.recommendations == ()

    def test_project_without_tests_gets_automation_advice(self):
        reqs = [_make_req(1, Priority.LOW)]
        report = assemble_report(_make_snapshot(reqs, []), now=NOW)
        recs = [(r.type, r.area) for r in report.recommendations]
        assert recs == [
            (RecommendationType.MEDIUM, RecommendationArea.COVERAGE),
            (RecommendationType.LOW, RecommendationArea.AUTOMATION),
        ]
        assert report.recommendations[-1].details["automation_rate"] == 0
        # nothing covered, so the pass-rate rule stays quiet
        assert RecommendationArea.EXECUTION not in [area for _, area in recs]

    def test_zero_requirements_yield_nothing(self):
        coverage = summarize_coverage([])
        risk = assess_risk([])
        metrics = compute_quality_metrics(coverage, ProjectCounters())
        assert generate_recommendations(coverage, risk, metrics) == []


# ═══════════════════════════════════════════════════════════════════════════
# Report assembly
# ═══════════════════════════════════════════════════════════════════════════

class TestAssembleReport:
    def test_end_to_end_scenario(self):
        report = assemble_report(_scenario_snapshot(), now=NOW)

        cov = report.coverage_analysis
        assert cov.covered_requirements == 1
        assert cov.coverage_percent == pytest.approx(25.0)
        assert cov.passed_requirements == 0

        risk = report.risk_analysis
        assert risk.critical_uncovered_count == 2
        assert risk.critical_failing_count == 0
        assert risk.risk_score == pytest.approx(0.3)
        # 0.6 * 2/4 = 0.30 is past the 0.20 line
        assert risk.risk_level == RiskLevel.CRITICAL

        metrics = report.metrics
        assert metrics.requirements.quality_score == pytest.approx(1.25)
        assert metrics.testing.quality_score == pytest.approx(2.5)
        assert metrics.automation.quality_score == 0

        recs = [(r.type.value, r.area.value) for r in report.recommendations]
        assert recs == [
            ("high", "coverage"),      # 2 uncovered High/Critical requirements
            ("high", "coverage"),      # Critical bucket at 0 %
            ("high", "coverage"),      # High bucket at 0 %
            ("medium", "coverage"),    # 25 % overall
            ("medium", "execution"),   # 0 % of requirements fully passing
            ("low", "automation"),     # nothing automated
        ]
        first = report.recommendations[0]
        assert first.message.startswith("2 critical requirements")
        assert first.details["requirements"] == ("REQ-001", "REQ-002")
        assert first.to_dict()["details"]["requirements"] == ["REQ-001", "REQ-002"]

    def test_zero_requirements(self):
        report = assemble_report(_make_snapshot([], []), now=NOW)
        assert report.coverage_analysis.coverage_percent == 0
        assert report.coverage_analysis.pass_rate == 0
        assert report.risk_analysis.risk_level == RiskLevel.UNDEFINED
        assert report.recommendations == ()

    def test_flags_gate_sections_only(self):
        full = assemble_report(_scenario_snapshot(), now=NOW)
        partial = assemble_report(
            _scenario_snapshot(),
            ReportOptions(include_metrics=False, include_coverage_analysis=False),
            now=NOW,
        )
        assert partial.metrics is None
        assert partial.coverage_analysis is None
        assert partial.risk_analysis.to_dict() == full.risk_analysis.to_dict()
        assert [r.to_dict() for r in partial.recommendations] == \
            [r.to_dict() for r in full.recommendations]

    def test_preview_does_not_change_content(self):
        stored = assemble_report(_scenario_snapshot(), ReportOptions(preview=False), now=NOW)
        preview = assemble_report(_scenario_snapshot(), ReportOptions(preview=True), now=NOW)
        a, b = stored.to_dict(), preview.to_dict()
        a.pop("options"), b.pop("options")
        assert a == b

    def test_serialization_is_stable(self):
        body = assemble_report(_scenario_snapshot(), now=NOW).to_dict()
        assert json.loads(json.dumps(body)) == body
        assert body["generated_at"] == NOW.isoformat()
        assert "matrix" not in body

    def test_report_sections_are_read_only(self):
        report = assemble_report(_scenario_snapshot(), now=NOW)
        cov = report.coverage_analysis
        with pytest.raises(dataclasses.FrozenInstanceError):
            cov.covered_requirements = 4
        with pytest.raises(dataclasses.FrozenInstanceError):
            cov.priority_coverage["Medium"].covered = 0
        with pytest.raises(TypeError):
            cov.priority_coverage["Critical"] = cov.priority_coverage["Medium"]
        with pytest.raises(TypeError):
            report.recommendations[0].details["count"] = 0
        assert report.to_dict() == assemble_report(_scenario_snapshot(), now=NOW).to_dict()

    def test_missing_snapshot_raises(self):
        with pytest.raises(NotFoundError):
            assemble_report(None)

    def test_options_from_request_body(self):
        opts = ReportOptions.from_mapping({"includeMetrics": False, "preview": "true",
                                           "include_risk_analysis": 0})
        assert opts.include_metrics is False
        assert opts.include_risk_analysis is False
        assert opts.include_coverage_analysis is True
        assert opts.preview is True
        assert ReportOptions.from_mapping(None) == ReportOptions()

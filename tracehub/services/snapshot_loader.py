"""
Snapshot loader — the store side of the engine boundary.

Converts ORM rows into the engine's plain records. Labels are parsed
leniently here: anything stored that no longer maps onto an enum is logged
and bucketed (priority → Undefined, status → not executed) so a report over
drifted data still completes.

    snapshot = load_project_snapshot(project_id)
    report = assemble_report(snapshot, options)
"""

from __future__ import annotations

import logging

from tracehub.engine.report import ProjectSnapshot
from tracehub.engine.types import (
    ExecutionStatus,
    HistoryEntry,
    ProjectCounters,
    Requirement,
    SuiteStatistics,
    TestCase,
    TestCaseType,
    TestSuite,
    parse_execution_status,
    parse_priority,
    parse_test_case_type,
    percent,
)
from tracehub.models.requirement import Requirement as RequirementModel
from tracehub.models.testing import TestSuite as TestSuiteModel
from tracehub.services.project_service import get_project

logger = logging.getLogger(__name__)


def _to_requirement(row: RequirementModel, include_history: bool) -> Requirement:
    history = []
    if include_history:
        history = [
            HistoryEntry(action=h.action, timestamp=h.timestamp, actor=h.actor, details=h.details or "")
            for h in row.history
        ]
    return Requirement(
        id=str(row.id),
        code=row.code,
        name=row.name,
        description=row.description or "",
        priority=parse_priority(row.priority, strict=False),
        status=row.status or "",
        test_case_ids=[str(tc_id) for tc_id in row.test_case_ids],
        tags=row.tag_list,
        history=history,
        project_id=row.project_id,
    )


def _to_status(raw) -> ExecutionStatus | None:
    if raw is None:
        return None
    status = parse_execution_status(raw, strict=False)
    return None if status == ExecutionStatus.SKIPPED else status


def _to_suite(row: TestSuiteModel) -> TestSuite:
    cases = [
        TestCase(
            id=str(tc.id),
            name=tc.name,
            description=tc.description or "",
            priority=parse_priority(tc.priority, strict=False),
            type=parse_test_case_type(tc.case_type, strict=False),
            steps=list(tc.steps or []),
            prerequisites=[p for p in (tc.prerequisites or "").splitlines() if p.strip()],
            expected_result=tc.expected_result or "",
            last_execution_status=_to_status(tc.last_execution_status),
        )
        for tc in row.test_cases
    ]
    automated = sum(1 for tc in cases if tc.type == TestCaseType.AUTOMATED)
    stats = SuiteStatistics(
        total_tests=len(cases),
        pass_rate=row.pass_rate or 0.0,
        last_execution=row.last_execution_at,
        automation_rate=percent(automated, len(cases)),
        total_executions=row.total_executions or 0,
    )
    return TestSuite(id=str(row.id), name=row.name, project_id=row.project_id,
                     test_cases=cases, statistics=stats)


def list_requirements(project_id: int, *, include_history: bool = False) -> list[Requirement]:
    get_project(project_id)
    rows = (
        RequirementModel.query
        .filter_by(project_id=project_id)
        .order_by(RequirementModel.id)
        .all()
    )
    return [_to_requirement(r, include_history) for r in rows]


def list_suites_with_cases(project_id: int) -> list[TestSuite]:
    get_project(project_id)
    rows = TestSuiteModel.query.filter_by(project_id=project_id).order_by(TestSuiteModel.id).all()
    return [_to_suite(s) for s in rows]


def get_project_counters(project_id: int, suites: list[TestSuite] | None = None) -> ProjectCounters:
    """Recompute project counters from the test-case records."""
    if suites is None:
        suites = list_suites_with_cases(project_id)
    return ProjectCounters.from_suites(suites)


def load_project_snapshot(project_id: int) -> ProjectSnapshot:
    project = get_project(project_id)
    requirements = list_requirements(project.id)
    suites = list_suites_with_cases(project.id)
    counters = get_project_counters(project.id, suites)
    logger.debug(
        "Snapshot loaded: %d requirements, %d suites, %d test cases",
        len(requirements), len(suites), counters.total_tests_count,
        extra={"project_id": project.id},
    )
    return ProjectSnapshot(project_id=project.id, requirements=requirements,
                           suites=suites, counters=counters)

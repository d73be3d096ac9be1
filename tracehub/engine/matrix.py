"""
Traceability matrix builder.

Joins every requirement to the test cases it links, resolving ids through a
project-wide lookup built from the suites:

    rows = build_traceability_matrix(requirements, suites)
    rows[0].linked_test_cases   -> cases that still exist, in link order
    rows[0].execution_summary   -> passed / failed / blocked / not_executed

A linked id that no suite contains is dropped. Missing input collections
raise ``NotFoundError`` and no rows are returned.
"""

from __future__ import annotations

import logging

from tracehub.core.exceptions import NotFoundError
from tracehub.engine.types import (
    CoverageRow,
    ExecutionStatus,
    LinkedTestCase,
    Requirement,
    RowExecutionSummary,
    TestSuite,
    TERMINAL_STATUSES,
    percent,
)

logger = logging.getLogger(__name__)


def index_test_cases(suites: list[TestSuite]) -> dict[str, LinkedTestCase]:
    """Flatten suites into ``case_id -> LinkedTestCase``.

    A case id that appears in more than one suite keeps the last one seen.
    """
    lookup: dict[str, LinkedTestCase] = {}
    for suite in suites:
        for tc in suite.test_cases:
            lookup[tc.id] = LinkedTestCase(test_case=tc, suite_id=suite.id, suite_name=suite.name)
    return lookup


def _summarize_links(linked: list[LinkedTestCase]) -> RowExecutionSummary:
    statuses = [tc.last_execution_status for tc in linked]
    executed = sum(1 for s in statuses if s in TERMINAL_STATUSES)
    return RowExecutionSummary(
        total=len(linked),
        passed=statuses.count(ExecutionStatus.PASSED),
        failed=statuses.count(ExecutionStatus.FAILED),
        blocked=statuses.count(ExecutionStatus.BLOCKED),
        not_executed=len(linked) - executed,
    )


def build_row(requirement: Requirement, lookup: dict[str, LinkedTestCase],
              total_cases: int) -> CoverageRow:
    linked = [lookup[tc_id] for tc_id in requirement.test_case_ids if tc_id in lookup]
    dangling = len(requirement.test_case_ids) - len(linked)
    if dangling:
        logger.debug("Requirement %s has %d dangling test-case link(s)",
                     requirement.code, dangling, extra={"requirement_id": requirement.id})

    summary = _summarize_links(linked)
    executed = summary.passed + summary.failed + summary.blocked
    return CoverageRow(
        requirement=requirement,
        linked_test_cases=tuple(linked),
        # Share of the whole project's cases, not of this requirement's links
        coverage=percent(len(linked), total_cases),
        pass_rate=percent(summary.passed, executed),
        execution_summary=summary,
    )


def build_traceability_matrix(requirements: list[Requirement] | None,
                              suites: list[TestSuite] | None) -> list[CoverageRow]:
    """Build one CoverageRow per requirement, in input order."""
    if requirements is None:
        raise NotFoundError("Requirements snapshot")
    if suites is None:
        raise NotFoundError("Test suites snapshot")
    for idx, req in enumerate(requirements):
        if req is None:
            raise NotFoundError("Requirement", f"#{idx}")

    lookup = index_test_cases(suites)
    total_cases = len(lookup)
    rows = [build_row(req, lookup, total_cases) for req in requirements]

    logger.debug("Traceability matrix built: %d requirements, %d test cases",
                 len(rows), total_cases)
    return rows

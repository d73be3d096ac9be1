"""
Testing service — suites, test cases and execution finalization.

Finalizing an execution:
    1. maps every raw result label onto an ExecutionStatus
       (Passed/Passou/passed, Failed/Falhou/failed, Blocked/Bloqueado/blocked;
       anything else is Skipped)
    2. stores the TestExecution with its summary and TestResult rows
    3. stamps each case's last_execution_status (Skipped → not executed)
    4. folds the run into the suite statistics:
         total_executions += 1
         pass_rate = (pass_rate * (n - 1) + run_pass_rate) / n
         last_execution_at, environment_counts[env] += 1

Deleting an execution reverses step 4.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from tracehub.core.exceptions import ValidationError
from tracehub.engine.types import (
    ExecutionSummary,
    TERMINAL_STATUSES,
    TestResult as ResultRecord,
    parse_execution_status,
    parse_priority,
    parse_test_case_type,
    percent,
)
from tracehub.models import db
from tracehub.models.testing import (
    DEFAULT_ENVIRONMENT,
    TestCase,
    TestExecution,
    TestResult,
    TestSuite,
)
from tracehub.services.helpers import get_or_raise, optional_text, require_text
from tracehub.services.project_service import get_project

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Suites & cases
# ═════════════════════════════════════════════════════════════════════════════

def create_suite(project_id: int, data: dict) -> TestSuite:
    project = get_project(project_id)
    suite = TestSuite(
        project_id=project.id,
        name=require_text(data, "name", max_len=200),
        description=optional_text(data, "description"),
        environment_counts={},
    )
    db.session.add(suite)
    db.session.flush()
    logger.info("Test suite created: %s", suite.name,
                extra={"project_id": project.id, "suite_id": suite.id})
    return suite


def get_suite(suite_id: int) -> TestSuite:
    return get_or_raise(TestSuite, suite_id, resource="TestSuite")


def list_suites(project_id: int) -> list[TestSuite]:
    get_project(project_id)
    return TestSuite.query.filter_by(project_id=project_id).order_by(TestSuite.id).all()


def _text_list(value, field: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [line.strip() for line in value.splitlines() if line.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    raise ValidationError(f"{field} must be a list of strings", details={field: "invalid"})


def add_test_case(suite_id: int, data: dict) -> TestCase:
    suite = get_suite(suite_id)
    tc = TestCase(
        suite_id=suite.id,
        position=suite.test_cases.count(),
        name=require_text(data, "name", max_len=300),
        description=optional_text(data, "description"),
        priority=parse_priority(data.get("priority") or "Medium").value,
        case_type=parse_test_case_type(data.get("type") or "Manual").value,
        steps=_text_list(data.get("steps"), "steps"),
        prerequisites="\n".join(_text_list(data.get("prerequisites"), "prerequisites")),
        expected_result=optional_text(data, "expected_result"),
    )
    db.session.add(tc)
    db.session.flush()
    logger.debug("Test case %s added to suite %s", tc.id, suite.id,
                 extra={"project_id": suite.project_id, "suite_id": suite.id})
    return tc


# ═════════════════════════════════════════════════════════════════════════════
# Executions
# ═════════════════════════════════════════════════════════════════════════════

def _parse_results(suite: TestSuite, raw_results) -> list[tuple[TestCase, ResultRecord]]:
    if not isinstance(raw_results, list) or not raw_results:
        raise ValidationError("results must be a non-empty list", details={"results": "required"})

    cases = {tc.id: tc for tc in suite.test_cases}
    parsed = []
    for idx, item in enumerate(raw_results):
        if not isinstance(item, dict):
            raise ValidationError(f"results[{idx}] must be an object",
                                  details={"index": idx})
        try:
            case_id = int(item.get("test_case_id"))
        except (TypeError, ValueError):
            case_id = None
        tc = cases.get(case_id)
        if tc is None:
            raise ValidationError(
                f"Test case {item.get('test_case_id')!r} does not belong to suite {suite.id}",
                details={"index": idx, "test_case_id": item.get("test_case_id")},
            )
        status = parse_execution_status(item.get("status"), strict=False)
        parsed.append((tc, ResultRecord(str(tc.id), status, str(item.get("notes") or ""))))
    return parsed


def _run_pass_rate(execution: TestExecution) -> float:
    return percent(execution.passed, execution.total)


def finalize_execution(suite_id: int, data: dict, actor: str | None = None) -> TestExecution:
    suite = get_suite(suite_id)
    parsed = _parse_results(suite, data.get("results"))
    summary = ExecutionSummary.from_results([record for _, record in parsed])
    environment = optional_text(data, "environment", DEFAULT_ENVIRONMENT)
    now = datetime.now(timezone.utc)

    execution = TestExecution(
        suite_id=suite.id,
        environment=environment,
        executed_by=actor or optional_text(data, "executed_by") or None,
        executed_at=now,
        **summary.to_dict(),
    )
    db.session.add(execution)
    db.session.flush()

    for tc, record in parsed:
        db.session.add(TestResult(
            execution_id=execution.id,
            test_case_id=tc.id,
            status=record.status.value,
            notes=record.notes,
        ))
        tc.last_execution_status = (
            record.status.value if record.status in TERMINAL_STATUSES else None
        )
        tc.last_execution_at = now

    n = (suite.total_executions or 0) + 1
    suite.total_executions = n
    suite.last_execution_at = now
    if summary.total > 0:
        suite.pass_rate = ((suite.pass_rate or 0.0) * (n - 1) + _run_pass_rate(execution)) / n
    envs = dict(suite.environment_counts or {})
    envs[environment] = envs.get(environment, 0) + 1
    suite.environment_counts = envs

    db.session.flush()
    logger.info(
        "Execution %s finalized for suite %s: %d passed, %d failed, %d blocked, %d skipped",
        execution.id, suite.id, summary.passed, summary.failed, summary.blocked, summary.skipped,
        extra={"project_id": suite.project_id, "suite_id": suite.id},
    )
    return execution


def list_executions(suite_id: int) -> list[TestExecution]:
    suite = get_suite(suite_id)
    return (
        TestExecution.query
        .filter_by(suite_id=suite.id)
        .order_by(TestExecution.executed_at.desc(), TestExecution.id.desc())
        .all()
    )


def get_execution(execution_id: int) -> TestExecution:
    return get_or_raise(TestExecution, execution_id, resource="TestExecution")


def delete_execution(execution_id: int) -> None:
    """Delete an execution and take it back out of the suite statistics.

    Case statuses stamped by the run are left as they are.
    """
    execution = get_execution(execution_id)
    suite = execution.suite

    n = max((suite.total_executions or 0) - 1, 0)
    if n == 0:
        suite.pass_rate = 0.0
    elif execution.total > 0:
        suite.pass_rate = ((suite.pass_rate or 0.0) * (n + 1) - _run_pass_rate(execution)) / n
    suite.total_executions = n

    envs = dict(suite.environment_counts or {})
    remaining = envs.get(execution.environment, 0) - 1
    if remaining > 0:
        envs[execution.environment] = remaining
    else:
        envs.pop(execution.environment, None)
    suite.environment_counts = envs

    db.session.delete(execution)
    db.session.flush()

    latest = (
        TestExecution.query
        .filter_by(suite_id=suite.id)
        .order_by(TestExecution.executed_at.desc(), TestExecution.id.desc())
        .first()
    )
    suite.last_execution_at = latest.executed_at if latest else None
    db.session.flush()

    logger.info("Execution %s deleted from suite %s", execution_id, suite.id,
                extra={"project_id": suite.project_id, "suite_id": suite.id})

"""
Traceability engine — shared value types.

Plain in-memory records the engine computes over. Nothing here knows about
Flask or the database: the snapshot loader converts ORM rows into these
types before any computation starts.

Priority, execution status and test-case type are closed ``str`` enums.
Free-text labels (English or the Portuguese labels of the legacy data set)
are mapped through explicit tables in the ``parse_*`` helpers:

    parse_priority("Alta")                 -> Priority.HIGH
    parse_priority("Urgent")               -> ValidationError
    parse_priority("Urgent", strict=False) -> Priority.UNDEFINED
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from tracehub.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Enums & label mapping tables
# ═════════════════════════════════════════════════════════════════════════════

class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"
    UNDEFINED = "Undefined"


class ExecutionStatus(str, Enum):
    PASSED = "Passed"
    FAILED = "Failed"
    BLOCKED = "Blocked"
    SKIPPED = "Skipped"


class TestCaseType(str, Enum):
    __test__ = False

    MANUAL = "Manual"
    AUTOMATED = "Automated"
    EXPLORATORY = "Exploratory"


PRIORITY_LABELS: dict[str, Priority] = {
    "low": Priority.LOW,
    "baixa": Priority.LOW,
    "medium": Priority.MEDIUM,
    "média": Priority.MEDIUM,
    "media": Priority.MEDIUM,
    "high": Priority.HIGH,
    "alta": Priority.HIGH,
    "critical": Priority.CRITICAL,
    "crítica": Priority.CRITICAL,
    "critica": Priority.CRITICAL,
    "undefined": Priority.UNDEFINED,
    "indefinida": Priority.UNDEFINED,
}

EXECUTION_STATUS_LABELS: dict[str, ExecutionStatus] = {
    "passed": ExecutionStatus.PASSED,
    "pass": ExecutionStatus.PASSED,
    "passou": ExecutionStatus.PASSED,
    "failed": ExecutionStatus.FAILED,
    "fail": ExecutionStatus.FAILED,
    "falhou": ExecutionStatus.FAILED,
    "blocked": ExecutionStatus.BLOCKED,
    "bloqueado": ExecutionStatus.BLOCKED,
    "skipped": ExecutionStatus.SKIPPED,
    "not executed": ExecutionStatus.SKIPPED,
    "não executado": ExecutionStatus.SKIPPED,
}

TEST_CASE_TYPE_LABELS: dict[str, TestCaseType] = {
    "manual": TestCaseType.MANUAL,
    "automated": TestCaseType.AUTOMATED,
    "automatizado": TestCaseType.AUTOMATED,
    "exploratory": TestCaseType.EXPLORATORY,
    "exploratório": TestCaseType.EXPLORATORY,
    "exploratorio": TestCaseType.EXPLORATORY,
}

# Statuses a test case can keep as its last known result
TERMINAL_STATUSES = frozenset({
    ExecutionStatus.PASSED, ExecutionStatus.FAILED, ExecutionStatus.BLOCKED,
})

# Priorities treated as "critical" by risk analysis and the dashboard cards
HIGH_IMPACT_PRIORITIES = frozenset({Priority.HIGH, Priority.CRITICAL})


def _lookup(table: dict, value, *, kind: str, strict: bool, fallback):
    if isinstance(value, Enum) and value in table.values():
        return value
    key = str(value).strip().lower() if value is not None else ""
    found = table.get(key)
    if found is not None:
        return found
    if strict:
        raise ValidationError(f"Unknown {kind} {value!r}", details={kind: value})
    if key:
        logger.warning("Unknown %s label %r mapped to %s", kind, value, fallback)
    return fallback


def parse_priority(value: Any, *, strict: bool = True) -> Priority:
    """Map a priority label onto :class:`Priority`.

    Strict mode (write paths) raises ``ValidationError`` for unknown labels.
    Lenient mode (reading stored data) maps them to ``Priority.UNDEFINED``.
    """
    return _lookup(PRIORITY_LABELS, value, kind="priority", strict=strict,
                   fallback=Priority.UNDEFINED)


def parse_execution_status(value: Any, *, strict: bool = True) -> ExecutionStatus:
    """Map a result label onto :class:`ExecutionStatus` (lenient: SKIPPED)."""
    return _lookup(EXECUTION_STATUS_LABELS, value, kind="status", strict=strict,
                   fallback=ExecutionStatus.SKIPPED)


def parse_test_case_type(value: Any, *, strict: bool = True) -> TestCaseType:
    """Map a test-case type label onto :class:`TestCaseType` (lenient: MANUAL)."""
    return _lookup(TEST_CASE_TYPE_LABELS, value, kind="type", strict=strict,
                   fallback=TestCaseType.MANUAL)


def percent(numerator: float, denominator: float) -> float:
    """Zero-safe percentage: ``numerator / denominator * 100``, 0 when den is 0."""
    if not denominator:
        return 0.0
    return (numerator / denominator) * 100


def non_negative(value: Any) -> float:
    """Coerce missing, NaN or negative metric inputs to 0."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or number < 0:
        return 0.0
    return number


# ═════════════════════════════════════════════════════════════════════════════
# Source records
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class HistoryEntry:
    """One append-only audit entry on a requirement."""
    action: str
    timestamp: datetime | None
    actor: str | None
    details: str = ""

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "actor": self.actor,
            "details": self.details,
        }


@dataclass
class Requirement:
    id: str
    code: str
    name: str
    description: str = ""
    priority: Priority | None = Priority.MEDIUM
    status: str = "Pending"
    test_case_ids: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    project_id: int | str | None = None

    @property
    def priority_label(self) -> str:
        """Bucket label; unset priorities fall under "Undefined"."""
        if isinstance(self.priority, Priority):
            return self.priority.value
        return Priority.UNDEFINED.value

    def to_dict(self, include_history: bool = False) -> dict:
        result = {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "priority": self.priority_label,
            "status": self.status,
            "test_case_ids": list(self.test_case_ids),
            "tags": list(self.tags),
        }
        if include_history:
            result["history"] = [h.to_dict() for h in self.history]
        return result


@dataclass
class TestCase:
    __test__ = False

    id: str
    name: str
    description: str = ""
    priority: Priority | None = Priority.MEDIUM
    type: TestCaseType = TestCaseType.MANUAL
    steps: list[str] = field(default_factory=list)
    prerequisites: list[str] = field(default_factory=list)
    expected_result: str = ""
    last_execution_status: ExecutionStatus | None = None

    @property
    def executed(self) -> bool:
        return self.last_execution_status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "priority": self.priority.value if isinstance(self.priority, Priority) else None,
            "type": self.type.value,
            "last_execution_status": (
                self.last_execution_status.value if self.last_execution_status else None
            ),
        }


@dataclass
class SuiteStatistics:
    total_tests: int = 0
    pass_rate: float = 0.0
    last_execution: datetime | None = None
    automation_rate: float = 0.0
    total_executions: int = 0

    def to_dict(self) -> dict:
        return {
            "total_tests": self.total_tests,
            "pass_rate": self.pass_rate,
            "last_execution": self.last_execution.isoformat() if self.last_execution else None,
            "automation_rate": self.automation_rate,
            "total_executions": self.total_executions,
        }


@dataclass
class TestSuite:
    __test__ = False

    id: str
    name: str
    project_id: int | str | None = None
    test_cases: list[TestCase] = field(default_factory=list)
    statistics: SuiteStatistics = field(default_factory=SuiteStatistics)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "test_case_ids": [tc.id for tc in self.test_cases],
            "statistics": self.statistics.to_dict(),
        }


@dataclass(frozen=True)
class TestResult:
    __test__ = False

    test_case_id: str
    status: ExecutionStatus
    notes: str = ""


@dataclass(frozen=True)
class ExecutionSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    blocked: int = 0
    skipped: int = 0

    @classmethod
    def from_results(cls, results) -> "ExecutionSummary":
        statuses = [r.status for r in results]
        return cls(
            total=len(statuses),
            passed=statuses.count(ExecutionStatus.PASSED),
            failed=statuses.count(ExecutionStatus.FAILED),
            blocked=statuses.count(ExecutionStatus.BLOCKED),
            skipped=statuses.count(ExecutionStatus.SKIPPED),
        )

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "blocked": self.blocked,
            "skipped": self.skipped,
        }


@dataclass(frozen=True)
class ProjectCounters:
    """Project-wide test counters, recomputed from test-case records.

    Never read from denormalized project fields: ``from_suites`` derives every
    count from the cases themselves so the numbers cannot drift.
    """
    total_tests_count: int = 0
    executed_tests_count: int = 0
    pass_count: int = 0
    fail_count: int = 0
    automated_tests_count: int = 0

    @classmethod
    def from_suites(cls, suites) -> "ProjectCounters":
        cases = [tc for suite in suites for tc in suite.test_cases]
        return cls(
            total_tests_count=len(cases),
            executed_tests_count=sum(1 for tc in cases if tc.executed),
            pass_count=sum(1 for tc in cases if tc.last_execution_status == ExecutionStatus.PASSED),
            fail_count=sum(1 for tc in cases if tc.last_execution_status == ExecutionStatus.FAILED),
            automated_tests_count=sum(1 for tc in cases if tc.type == TestCaseType.AUTOMATED),
        )

    @property
    def execution_rate(self) -> float:
        return percent(self.executed_tests_count, self.total_tests_count)

    @property
    def pass_rate(self) -> float:
        return percent(self.pass_count, self.executed_tests_count)

    @property
    def automation_rate(self) -> float:
        return percent(self.automated_tests_count, self.total_tests_count)

    def to_dict(self) -> dict:
        return {
            "total_tests_count": self.total_tests_count,
            "executed_tests_count": self.executed_tests_count,
            "pass_count": self.pass_count,
            "fail_count": self.fail_count,
            "automated_tests_count": self.automated_tests_count,
        }


# ═════════════════════════════════════════════════════════════════════════════
# Matrix rows
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LinkedTestCase:
    """A test case resolved through the project lookup, with its suite."""
    test_case: TestCase
    suite_id: str
    suite_name: str

    @property
    def id(self) -> str:
        return self.test_case.id

    @property
    def last_execution_status(self) -> ExecutionStatus | None:
        return self.test_case.last_execution_status

    def to_dict(self) -> dict:
        result = self.test_case.to_dict()
        result["suite_id"] = self.suite_id
        result["suite_name"] = self.suite_name
        return result


@dataclass(frozen=True)
class RowExecutionSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    blocked: int = 0
    not_executed: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "blocked": self.blocked,
            "not_executed": self.not_executed,
        }


@dataclass(frozen=True)
class CoverageRow:
    requirement: Requirement
    linked_test_cases: tuple[LinkedTestCase, ...]
    coverage: float
    pass_rate: float
    execution_summary: RowExecutionSummary

    @property
    def is_covered(self) -> bool:
        return len(self.linked_test_cases) > 0

    def to_dict(self) -> dict:
        return {
            "requirement": self.requirement.to_dict(),
            "linked_test_cases": [tc.to_dict() for tc in self.linked_test_cases],
            "coverage": self.coverage,
            "pass_rate": self.pass_rate,
            "execution_summary": self.execution_summary.to_dict(),
        }

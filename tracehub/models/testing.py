"""
TraceHub — testing domain models.

Models:
    - TestSuite:      ordered collection of test cases, plus run statistics
    - TestCase:       a test case owned by exactly one suite
    - TestExecution:  one finalized run of a suite
    - TestResult:     per-case outcome within an execution

Architecture:
    Project ──1:N──▶ TestSuite ──1:N──▶ TestCase
    TestSuite ──1:N──▶ TestExecution ──1:N──▶ TestResult

Executions are created only by finalization and are immutable apart from
deletion.
"""

from datetime import datetime, timezone

from tracehub.engine.types import percent
from tracehub.models import db

# Environment used when a run does not name one
DEFAULT_ENVIRONMENT = "Unspecified"


class TestSuite(db.Model):
    """
    Suite of test cases.

    ``total_tests`` and ``automation_rate`` are derived from the cases on
    every read. Run statistics (executions, running pass rate, last run,
    per-environment counts) are maintained by execution finalization.
    """

    __test__ = False
    __tablename__ = "test_suites"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")

    # ── Run statistics
    total_executions = db.Column(db.Integer, nullable=False, default=0)
    pass_rate = db.Column(db.Float, nullable=False, default=0.0,
                          comment="Running average of per-run pass rates")
    last_execution_at = db.Column(db.DateTime(timezone=True), nullable=True)
    environment_counts = db.Column(db.JSON, nullable=True, comment="{environment: runs}")

    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    test_cases = db.relationship(
        "TestCase", backref="suite", lazy="dynamic",
        cascade="all, delete-orphan", order_by="TestCase.position",
    )
    executions = db.relationship(
        "TestExecution", backref="suite", lazy="dynamic",
        cascade="all, delete-orphan", order_by="TestExecution.id",
    )

    def to_dict(self, include_cases=False):
        cases = self.test_cases.all()
        automated = sum(1 for tc in cases if tc.case_type == "Automated")
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "statistics": {
                "total_tests": len(cases),
                "automation_rate": percent(automated, len(cases)),
                "total_executions": self.total_executions,
                "pass_rate": self.pass_rate,
                "last_execution": self.last_execution_at.isoformat() if self.last_execution_at else None,
                "environments": dict(self.environment_counts or {}),
            },
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_cases:
            result["test_cases"] = [tc.to_dict() for tc in cases]
        return result

    def __repr__(self):
        return f"<TestSuite {self.id}: {self.name}>"


class TestCase(db.Model):
    __test__ = False
    __tablename__ = "test_cases"

    id = db.Column(db.Integer, primary_key=True)
    suite_id = db.Column(
        db.Integer, db.ForeignKey("test_suites.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    position = db.Column(db.Integer, nullable=False, default=0, comment="Order within suite")
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    priority = db.Column(db.String(20), default="Medium")
    case_type = db.Column(
        db.String(20), default="Manual",
        comment="Manual | Automated | Exploratory",
    )
    steps = db.Column(db.JSON, nullable=True, comment="Ordered list of step texts")
    prerequisites = db.Column(db.Text, default="")
    expected_result = db.Column(db.Text, default="")
    last_execution_status = db.Column(
        db.String(20), nullable=True,
        comment="Passed | Failed | Blocked; NULL = not executed",
    )
    last_execution_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "suite_id": self.suite_id,
            "position": self.position,
            "name": self.name,
            "description": self.description,
            "priority": self.priority,
            "type": self.case_type,
            "steps": list(self.steps or []),
            "prerequisites": self.prerequisites,
            "expected_result": self.expected_result,
            "last_execution_status": self.last_execution_status,
            "last_execution_at": self.last_execution_at.isoformat() if self.last_execution_at else None,
        }

    def __repr__(self):
        return f"<TestCase {self.id}: {self.name[:40]}>"


class TestExecution(db.Model):
    __test__ = False
    __tablename__ = "test_executions"

    id = db.Column(db.Integer, primary_key=True)
    suite_id = db.Column(
        db.Integer, db.ForeignKey("test_suites.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    environment = db.Column(db.String(100), nullable=False, default=DEFAULT_ENVIRONMENT)
    executed_by = db.Column(db.String(100), nullable=True)
    executed_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    total = db.Column(db.Integer, nullable=False, default=0)
    passed = db.Column(db.Integer, nullable=False, default=0)
    failed = db.Column(db.Integer, nullable=False, default=0)
    blocked = db.Column(db.Integer, nullable=False, default=0)
    skipped = db.Column(db.Integer, nullable=False, default=0)

    results = db.relationship(
        "TestResult", backref="execution", lazy="dynamic",
        cascade="all, delete-orphan", order_by="TestResult.id",
    )

    def to_dict(self, include_results=False):
        result = {
            "id": self.id,
            "suite_id": self.suite_id,
            "environment": self.environment,
            "executed_by": self.executed_by,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "summary": {
                "total": self.total,
                "passed": self.passed,
                "failed": self.failed,
                "blocked": self.blocked,
                "skipped": self.skipped,
            },
        }
        if include_results:
            result["results"] = [r.to_dict() for r in self.results]
        return result


class TestResult(db.Model):
    __test__ = False
    __tablename__ = "test_results"

    id = db.Column(db.Integer, primary_key=True)
    execution_id = db.Column(
        db.Integer, db.ForeignKey("test_executions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    test_case_id = db.Column(
        db.Integer, db.ForeignKey("test_cases.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    status = db.Column(db.String(20), nullable=False, comment="Passed | Failed | Blocked | Skipped")
    notes = db.Column(db.Text, default="")

    def to_dict(self):
        return {
            "id": self.id,
            "test_case_id": self.test_case_id,
            "status": self.status,
            "notes": self.notes,
        }

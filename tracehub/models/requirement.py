"""
TraceHub — requirement models.

Models:
    - Requirement:          a project requirement with a REQ-NNN code
    - RequirementTestLink:  requirement → test case link, kept in link order
    - RequirementHistory:   append-only audit trail (create/update/link/unlink)

Requirements are never physically deleted.
"""

from datetime import datetime, timezone

from tracehub.models import db


class Requirement(db.Model):
    __tablename__ = "requirements"
    __table_args__ = (
        db.UniqueConstraint("project_id", "code", name="uq_requirement_project_code"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    code = db.Column(db.String(20), nullable=False, comment="REQ-001, REQ-002, ...")
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    priority = db.Column(
        db.String(20), default="Medium",
        comment="Low | Medium | High | Critical",
    )
    status = db.Column(db.String(30), default="Pending")
    tags = db.Column(db.Text, default="", comment="Comma-separated tags")
    created_by = db.Column(db.String(100), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    links = db.relationship(
        "RequirementTestLink", backref="requirement", lazy="dynamic",
        cascade="all, delete-orphan", order_by="RequirementTestLink.id",
    )
    history = db.relationship(
        "RequirementHistory", backref="requirement", lazy="dynamic",
        cascade="all, delete-orphan", order_by="RequirementHistory.id",
    )

    @property
    def tag_list(self):
        return [t.strip() for t in (self.tags or "").split(",") if t.strip()]

    @property
    def test_case_ids(self):
        return [link.test_case_id for link in self.links]

    def to_dict(self, include_history=False):
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "tags": self.tag_list,
            "test_case_ids": self.test_case_ids,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_history:
            result["history"] = [h.to_dict() for h in self.history]
        return result

    def __repr__(self):
        return f"<Requirement {self.code}: {self.name[:40]}>"


class RequirementTestLink(db.Model):
    """Link from a requirement to a test case.

    ``test_case_id`` carries no foreign key: a link can outlive its test case
    and the matrix builder drops such links when it resolves them.
    """

    __tablename__ = "requirement_test_links"
    __table_args__ = (
        db.UniqueConstraint("requirement_id", "test_case_id", name="uq_requirement_test_link"),
    )

    id = db.Column(db.Integer, primary_key=True)
    requirement_id = db.Column(
        db.Integer, db.ForeignKey("requirements.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    test_case_id = db.Column(db.Integer, nullable=False, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "requirement_id": self.requirement_id,
            "test_case_id": self.test_case_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class RequirementHistory(db.Model):
    __tablename__ = "requirement_history"

    id = db.Column(db.Integer, primary_key=True)
    requirement_id = db.Column(
        db.Integer, db.ForeignKey("requirements.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    action = db.Column(db.String(30), nullable=False, comment="create | update | link | unlink")
    actor = db.Column(db.String(100), nullable=True)
    details = db.Column(db.Text, default="")
    timestamp = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "action": self.action,
            "actor": self.actor,
            "details": self.details,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

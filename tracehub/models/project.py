"""Project model: the unit every requirement, suite and report belongs to."""

from datetime import datetime, timezone

from tracehub.models import db


class Project(db.Model):
    """A test-management project.

    ``requirement_seq`` is the last number handed out as a ``REQ-NNN`` code.
    It only ever grows, so codes are never reused.
    """

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    requirement_seq = db.Column(
        db.Integer, nullable=False, default=0,
        comment="Last REQ-NNN number assigned in this project",
    )

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    requirements = db.relationship(
        "Requirement", backref="project", lazy="dynamic",
        cascade="all, delete-orphan",
    )
    suites = db.relationship(
        "TestSuite", backref="project", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "requirement_count": self.requirements.count(),
            "suite_count": self.suites.count(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.name}>"

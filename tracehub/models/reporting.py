"""
TraceHub — persisted quality reports.

A QualityReport is written only for non-preview report requests. The body
is the serialized report exactly as it was returned to the caller.
"""

from datetime import datetime, timezone

from tracehub.models import db


class QualityReport(db.Model):
    __tablename__ = "quality_reports"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    generated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    include_metrics = db.Column(db.Boolean, nullable=False, default=True)
    include_risk_analysis = db.Column(db.Boolean, nullable=False, default=True)
    include_coverage_analysis = db.Column(db.Boolean, nullable=False, default=True)

    # Denormalized for listing without loading the body
    risk_level = db.Column(db.String(20), nullable=True)
    overall_quality_score = db.Column(db.Float, nullable=True)
    recommendation_count = db.Column(db.Integer, nullable=False, default=0)

    body = db.Column(db.JSON, nullable=False)

    def to_dict(self, include_body=False):
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
            "include_metrics": self.include_metrics,
            "include_risk_analysis": self.include_risk_analysis,
            "include_coverage_analysis": self.include_coverage_analysis,
            "risk_level": self.risk_level,
            "overall_quality_score": self.overall_quality_score,
            "recommendation_count": self.recommendation_count,
        }
        if include_body:
            result["report"] = self.body
        return result

    def __repr__(self):
        return f"<QualityReport {self.id}: project={self.project_id}>"

"""
Rate limiting configuration.

Applies per-blueprint limits using Flask-Limiter. The Limiter instance is
created in tracehub/__init__.py with no default limits; this module applies
granular limits per route category.

Usage:
    from tracehub.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

# Report generation loads a full project snapshot and runs the whole engine
REPORT_LIMIT = "20/minute"
WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Quality reports:  20/minute
        - Write endpoints:  60/minute  (projects, requirements, testing)
        - Read endpoints:   200/minute (traceability views)
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("reporting")
    if bp:
        limiter.limit(REPORT_LIMIT)(bp)

    for bp_name in ("project", "requirement", "testing"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("traceability")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — reports: %s, write: %s, read: %s",
                    REPORT_LIMIT, WRITE_LIMIT, READ_LIMIT)

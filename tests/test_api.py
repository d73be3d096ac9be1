"""
HTTP API — end to end through the Flask test client.

Covers:
  • health endpoints + request id / duration headers
  • project + requirement CRUD, history, actor header
  • link / unlink error envelopes (409, 422, 404)
  • suites, test cases, execution finalize / list / delete
  • traceability matrix + coverage endpoints
  • quality reports: preview vs stored, camelCase flags, history, 404
  • request guards: Content-Type
"""

import pytest


# ═══════════════════════════════════════════════════════════════════════════
# Test helpers
# ═══════════════════════════════════════════════════════════════════════════

def _make_project(client, name="Mobile App"):
    r = client.post("/api/v1/projects", json={"name": name})
    assert r.status_code == 201
    return r.get_json()["id"]


def _make_req(client, pid, name="Sign in", priority="Medium"):
    r = client.post(f"/api/v1/projects/{pid}/requirements",
                    json={"name": name, "priority": priority},
                    headers={"X-Actor": "alice"})
    assert r.status_code == 201, r.get_json()
    return r.get_json()


def _make_suite(client, pid, name="Smoke"):
    r = client.post(f"/api/v1/projects/{pid}/suites", json={"name": name})
    assert r.status_code == 201
    return r.get_json()["id"]


def _make_case(client, suite_id, name="Case", case_type="Manual"):
    r = client.post(f"/api/v1/suites/{suite_id}/test-cases",
                    json={"name": name, "type": case_type, "steps": ["open", "check"]})
    assert r.status_code == 201, r.get_json()
    return r.get_json()["id"]


def _link(client, req_id, tc_id):
    return client.post(f"/api/v1/requirements/{req_id}/test-cases/{tc_id}")


def _execute(client, suite_id, results, environment="QA"):
    return client.post(f"/api/v1/suites/{suite_id}/executions", json={
        "environment": environment,
        "results": [{"test_case_id": tc, "status": s} for tc, s in results],
    })


def _scenario(client):
    """Critical, High, Medium, Low — only Medium has tests (1 passed, 1 failed)."""
    pid = _make_project(client)
    reqs = [_make_req(client, pid, f"Req {p}", p) for p in ("Critical", "High", "Medium", "Low")]
    sid = _make_suite(client, pid)
    tc1, tc2 = _make_case(client, sid, "Happy path"), _make_case(client, sid, "Bad password")
    _link(client, reqs[2]["id"], tc1)
    _link(client, reqs[2]["id"], tc2)
    _execute(client, sid, [(tc1, "Passed"), (tc2, "Failed")])
    return pid


# ═══════════════════════════════════════════════════════════════════════════
# Health & middleware
# ═══════════════════════════════════════════════════════════════════════════

class TestHealth:
    def test_ready(self, client):
        r = client.get("/api/v1/health/ready")
        assert r.status_code == 200
        assert r.get_json() == {"status": "ok"}

    def test_live_checks_database(self, client):
        r = client.get("/api/v1/health/live")
        assert r.status_code == 200
        assert r.get_json()["checks"]["database"]["status"] == "ok"

    def test_timing_headers(self, client):
        r = client.get("/api/v1/projects", headers={"X-Request-ID": "abc123"})
        assert r.headers["X-Request-ID"] == "abc123"
        assert float(r.headers["X-Request-Duration-Ms"]) >= 0

    def test_unknown_route(self, client):
        r = client.get("/api/v1/nope")
        assert r.status_code == 404
        assert r.get_json()["path"] == "/api/v1/nope"

    def test_non_json_body_rejected(self, client):
        r = client.post("/api/v1/projects", data="name=x", content_type="text/plain")
        assert r.status_code == 415


# ═══════════════════════════════════════════════════════════════════════════
# Projects & requirements
# ═══════════════════════════════════════════════════════════════════════════

class TestRequirementApi:
    def test_project_crud(self, client):
        pid = _make_project(client, "Billing")
        r = client.get(f"/api/v1/projects/{pid}")
        assert r.get_json()["name"] == "Billing"
        assert client.get("/api/v1/projects/999").status_code == 404

    def test_project_requires_name(self, client):
        r = client.post("/api/v1/projects", json={})
        assert r.status_code == 422
        assert r.get_json()["code"] == "ERR_VALIDATION_CONSTRAINT"

    def test_create_assigns_code_and_history(self, client):
        pid = _make_project(client)
        first = _make_req(client, pid)
        second = _make_req(client, pid, "Sign out", "Alta")
        assert first["code"] == "REQ-001"
        assert second["code"] == "REQ-002"
        assert second["priority"] == "High"
        assert first["history"][0]["action"] == "create"
        assert first["history"][0]["actor"] == "alice"

    def test_unknown_priority_is_422(self, client):
        pid = _make_project(client)
        r = client.post(f"/api/v1/projects/{pid}/requirements",
                        json={"name": "x", "priority": "Urgent"})
        assert r.status_code == 422
        assert r.get_json()["details"] == {"priority": "Urgent"}

    def test_update_keeps_code(self, client):
        pid = _make_project(client)
        req = _make_req(client, pid)
        r = client.put(f"/api/v1/requirements/{req['id']}",
                       json={"name": "Sign in with SSO", "code": "REQ-500"},
                       headers={"X-Actor": "bob"})
        data = r.get_json()
        assert r.status_code == 200
        assert data["name"] == "Sign in with SSO"
        assert data["code"] == "REQ-001"
        assert [h["action"] for h in data["history"]] == ["create", "update"]
        assert data["history"][-1]["actor"] == "bob"

    def test_list_requirements(self, client):
        pid = _make_project(client)
        _make_req(client, pid, "A")
        _make_req(client, pid, "B")
        r = client.get(f"/api/v1/projects/{pid}/requirements")
        assert [x["code"] for x in r.get_json()] == ["REQ-001", "REQ-002"]

    def test_link_and_unlink(self, client):
        pid = _make_project(client)
        req = _make_req(client, pid)
        tc = _make_case(client, _make_suite(client, pid))

        r = _link(client, req["id"], tc)
        assert r.status_code == 201
        assert r.get_json()["test_case_ids"] == [tc]

        r = _link(client, req["id"], tc)
        assert r.status_code == 409
        assert r.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

        r = client.delete(f"/api/v1/requirements/{req['id']}/test-cases/{tc}")
        assert r.status_code == 200
        assert r.get_json()["test_case_ids"] == []

        r = client.delete(f"/api/v1/requirements/{req['id']}/test-cases/{tc}")
        assert r.status_code == 422

    def test_link_unknown_case_is_404(self, client):
        pid = _make_project(client)
        req = _make_req(client, pid)
        assert _link(client, req["id"], 4242).status_code == 404


# ═══════════════════════════════════════════════════════════════════════════
# Suites & executions
# ═══════════════════════════════════════════════════════════════════════════

class TestTestingApi:
    def test_suite_with_cases(self, client):
        pid = _make_project(client)
        sid = _make_suite(client, pid)
        _make_case(client, sid, "A", "Automated")
        _make_case(client, sid, "B", "Manual")
        data = client.get(f"/api/v1/suites/{sid}").get_json()
        assert [tc["name"] for tc in data["test_cases"]] == ["A", "B"]
        assert data["test_cases"][0]["steps"] == ["open", "check"]
        assert data["statistics"]["automation_rate"] == pytest.approx(50.0)

    def test_invalid_case_type(self, client):
        pid = _make_project(client)
        sid = _make_suite(client, pid)
        r = client.post(f"/api/v1/suites/{sid}/test-cases", json={"name": "x", "type": "Robot"})
        assert r.status_code == 422

    def test_finalize_list_delete(self, client):
        pid = _make_project(client)
        sid = _make_suite(client, pid)
        tc = _make_case(client, sid)

        r = _execute(client, sid, [(tc, "Falhou")])
        assert r.status_code == 201
        execution = r.get_json()
        assert execution["summary"]["failed"] == 1
        assert execution["results"][0]["status"] == "Failed"

        listed = client.get(f"/api/v1/suites/{sid}/executions").get_json()
        assert [e["id"] for e in listed] == [execution["id"]]

        suite = client.get(f"/api/v1/suites/{sid}").get_json()
        assert suite["statistics"]["total_executions"] == 1
        assert suite["test_cases"][0]["last_execution_status"] == "Failed"

        assert client.delete(f"/api/v1/executions/{execution['id']}").status_code == 200
        suite = client.get(f"/api/v1/suites/{sid}").get_json()
        assert suite["statistics"]["total_executions"] == 0
        assert suite["statistics"]["last_execution"] is None
        assert client.get(f"/api/v1/executions/{execution['id']}").status_code == 404

    def test_finalize_without_results(self, client):
        pid = _make_project(client)
        sid = _make_suite(client, pid)
        assert _execute(client, sid, []).status_code == 422


# ═══════════════════════════════════════════════════════════════════════════
# Traceability & reports
# ═══════════════════════════════════════════════════════════════════════════

class TestTraceabilityApi:
    def test_matrix(self, client):
        pid = _scenario(client)
        data = client.get(f"/api/v1/projects/{pid}/traceability/matrix").get_json()
        assert data["total"] == 4
        medium = data["rows"][2]
        assert medium["requirement"]["priority"] == "Medium"
        assert medium["execution_summary"] == {
            "total": 2, "passed": 1, "failed": 1, "blocked": 0, "not_executed": 0,
        }
        assert medium["pass_rate"] == pytest.approx(50.0)
        assert medium["coverage"] == pytest.approx(100.0)

        (suite,) = data["suites"]
        assert suite["name"] == "Smoke"
        assert len(suite["test_case_ids"]) == 2
        stats = suite["statistics"]
        assert stats["total_tests"] == 2
        assert stats["total_executions"] == 1
        assert stats["pass_rate"] == pytest.approx(50.0)
        assert stats["automation_rate"] == 0
        assert stats["last_execution"] is not None

    def test_coverage(self, client):
        pid = _scenario(client)
        data = client.get(f"/api/v1/projects/{pid}/traceability/coverage").get_json()
        assert data["covered_requirements"] == 1
        assert data["coverage_percent"] == pytest.approx(25.0)
        assert [r["priority"] for r in data["uncovered"]] == ["Critical", "High", "Low"]
        assert data["critical_failing"] == []

    def test_matrix_unknown_project(self, client):
        assert client.get("/api/v1/projects/999/traceability/matrix").status_code == 404


class TestQualityReportApi:
    def test_preview_not_stored(self, client):
        pid = _scenario(client)
        r = client.post(f"/api/v1/projects/{pid}/quality-reports", json={"preview": True})
        assert r.status_code == 200
        body = r.get_json()
        assert body["report_id"] is None
        assert body["report"]["risk_analysis"]["risk_level"] == "Critical"
        assert client.get(f"/api/v1/projects/{pid}/quality-reports").get_json() == []

    def test_generate_and_fetch(self, client):
        pid = _scenario(client)
        r = client.post(f"/api/v1/projects/{pid}/quality-reports",
                        json={"includeMetrics": False})
        assert r.status_code == 201
        body = r.get_json()
        assert body["report"]["metrics"] is None
        assert body["report"]["coverage_analysis"]["coverage_percent"] == pytest.approx(25.0)
        assert body["report"]["recommendations"][0]["type"] == "high"

        history = client.get(f"/api/v1/projects/{pid}/quality-reports").get_json()
        assert [h["id"] for h in history] == [body["report_id"]]
        assert history[0]["recommendation_count"] == 6

        stored = client.get(f"/api/v1/quality-reports/{body['report_id']}").get_json()
        assert stored["report"] == body["report"]

    def test_unknown_project_returns_failure(self, client):
        r = client.post("/api/v1/projects/999/quality-reports", json={})
        assert r.status_code == 404
        data = r.get_json()
        assert data["code"] == "ERR_NOT_FOUND"
        assert data["details"] == {"retryable": True}

    def test_unknown_report(self, client):
        assert client.get("/api/v1/quality-reports/999").status_code == 404

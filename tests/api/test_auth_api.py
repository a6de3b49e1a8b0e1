from __future__ import annotations

import uuid

import sqlalchemy as sa

from monetaris.core.observability.metrics import get_metrics
from monetaris.core.tables import users


def _error(resp) -> str:
    return resp.json()["detail"]["error"]


def test_missing_header(api) -> None:
    resp = api.get("/api/v1/users/me")
    assert resp.status_code == 401
    assert _error(resp) == "user_missing"
    assert get_metrics()["auth_failures_total{reason=missing}"]["count"] == 1


def test_malformed_header(api) -> None:
    resp = api.get("/api/v1/users/me", headers={"X-User-ID": "admin"})
    assert resp.status_code == 401
    assert _error(resp) == "user_malformed"


def test_unknown_user(api) -> None:
    resp = api.get("/api/v1/users/me", headers={"X-User-ID": str(uuid.uuid4())})
    assert resp.status_code == 401
    assert _error(resp) == "user_unknown"


def test_inactive_user(api, engine, agent) -> None:
    with engine.begin() as conn:
        conn.execute(sa.update(users).where(users.c.id == agent.id).values(is_active=False))
    resp = api.get("/api/v1/users/me", headers={"X-User-ID": agent.id})
    assert resp.status_code == 403
    assert _error(resp) == "user_inactive"


def test_me_accepts_upper_case_id(api, agent, kreditor) -> None:
    resp = api.get("/api/v1/users/me", headers={"X-User-ID": agent.id.upper()})
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == agent.id
    assert body["role"] == "AGENT"
    assert body["assigned_kreditor_ids"] == [kreditor.id]


def test_admin_only_routes(api, admin, agent) -> None:
    resp = api.get("/api/v1/users", headers={"X-User-ID": agent.id})
    assert resp.status_code == 403
    assert _error(resp) == "access_denied"
    assert get_metrics()["auth_failures_total{reason=role}"]["count"] == 1

    resp = api.get("/api/v1/users", headers={"X-User-ID": admin.id})
    assert resp.status_code == 200
    assert {u["email"] for u in resp.json()} == {"admin@monetaris.example", "alex@monetaris.example"}


def test_user_admin_api(api, admin, kreditor) -> None:
    headers = {"X-User-ID": admin.id}
    resp = api.post(
        "/api/v1/users",
        json={"name": "Bea Berater", "email": "bea@monetaris.example", "role": "AGENT"},
        headers=headers,
    )
    assert resp.status_code == 201
    user_id = resp.json()["id"]

    resp = api.put(f"/api/v1/users/{user_id}/kreditoren/{kreditor.id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["assigned_kreditor_ids"] == [kreditor.id]

    resp = api.delete(f"/api/v1/users/{user_id}/kreditoren/{kreditor.id}", headers=headers)
    assert resp.json()["assigned_kreditor_ids"] == []

    resp = api.post(
        "/api/v1/users",
        json={"name": "Bea Berater", "email": "BEA@monetaris.example", "role": "AGENT"},
        headers=headers,
    )
    assert resp.status_code == 409
    assert resp.json()["detail"] == {"error": "duplicate_email", "detail": "A user with this email already exists"}


def test_trace_id_is_echoed(api) -> None:
    resp = api.get("/health/live", headers={"X-Trace-ID": "trace-abc"})
    assert resp.headers["X-Trace-ID"] == "trace-abc"
    assert api.get("/health/live").headers["X-Trace-ID"]

from __future__ import annotations


def test_health(api) -> None:
    assert api.get("/health/live").json() == {"status": "OK"}
    ready = api.get("/health/ready").json()
    assert ready == {"status": "OK", "version": "0.1.0", "db": "OK"}


def test_ops_metrics_admin_only(api, admin, agent) -> None:
    assert api.get("/ops/metrics", headers={"X-User-ID": agent.id}).status_code == 403
    api.get("/health/live")
    metrics = api.get("/ops/metrics", headers={"X-User-ID": admin.id}).json()
    assert metrics["request_duration_ms{route=/health/live}"]["count"] == 1


def test_inquiry_routes(api, client_user, agent, create_case) -> None:
    case = create_case()
    resp = api.post(
        "/api/v1/inquiries",
        json={"case_id": case.id, "question": "Ist die Adresse noch aktuell?"},
        headers={"X-User-ID": client_user.id},
    )
    assert resp.status_code == 201
    inquiry = resp.json()
    assert inquiry["status"] == "OPEN"

    resp = api.post(
        f"/api/v1/inquiries/{inquiry['id']}/resolve",
        json={"answer": "Ja, laut Melderegister aktuell."},
        headers={"X-User-ID": agent.id},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "RESOLVED"

    resp = api.post(
        f"/api/v1/inquiries/{inquiry['id']}/resolve",
        json={"answer": "Noch eine zweite Antwort."},
        headers={"X-User-ID": agent.id},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "already_resolved"

    resp = api.get("/api/v1/inquiries", params={"status": "RESOLVED"}, headers={"X-User-ID": client_user.id})
    assert [i["id"] for i in resp.json()] == [inquiry["id"]]
    resp = api.post(
        "/api/v1/inquiries", json={"case_id": case.id, "question": "kurz"}, headers={"X-User-ID": agent.id}
    )
    assert resp.status_code == 422


def test_template_routes(api, admin, agent, create_case) -> None:
    case = create_case()
    resp = api.post(
        "/api/v1/templates",
        json={
            "name": "Zahlungsaufforderung",
            "type": "EMAIL",
            "category": "PAYMENT",
            "subject": "Rechnung {{ case.invoiceNumber }}",
            "content": "Bitte zahlen Sie an {{ kreditor.bank_account_iban }}.",
        },
        headers={"X-User-ID": admin.id},
    )
    assert resp.status_code == 201
    tpl = resp.json()

    resp = api.get("/api/v1/templates", params={"type": "EMAIL", "category": "PAYMENT"}, headers={"X-User-ID": agent.id})
    assert [t["id"] for t in resp.json()] == [tpl["id"]]

    resp = api.post(
        f"/api/v1/templates/{tpl['id']}/render", json={"case_id": case.id}, headers={"X-User-ID": agent.id}
    )
    assert resp.json() == {
        "rendered_subject": f"Rechnung {case.invoice_number}",
        "rendered_content": "Bitte zahlen Sie an DE** **** **** **13000.",
    }

    resp = api.post(
        f"/api/v1/templates/{tpl['id']}/render-payment", json={"case_id": case.id}, headers={"X-User-ID": agent.id}
    )
    assert resp.status_code == 403
    resp = api.post(
        f"/api/v1/templates/{tpl['id']}/render-payment", json={"case_id": case.id}, headers={"X-User-ID": admin.id}
    )
    assert resp.json()["rendered_content"] == "Bitte zahlen Sie an DE89370400440532013000."

    resp = api.post(
        "/api/v1/templates",
        json={"name": "Kaputt", "type": "SMS", "category": "GENERAL", "content": "{% if %} nicht geschlossen"},
        headers={"X-User-ID": admin.id},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "template_syntax"


def test_dashboard_routes(api, admin, create_case) -> None:
    case = create_case()
    headers = {"X-User-ID": admin.id}

    stats = api.get("/api/v1/dashboard/stats", headers=headers).json()
    assert stats["active_cases"] == 1
    assert stats["total_volume"] == "115.50"

    chart = api.get("/api/v1/dashboard/financial", headers=headers).json()
    assert chart == {"monthly_revenue": []}

    results = api.get("/api/v1/dashboard/search", params={"q": case.invoice_number}, headers=headers).json()
    assert results[0]["type"] == "case"
    assert results[0]["title"] == f"Case {case.invoice_number}"

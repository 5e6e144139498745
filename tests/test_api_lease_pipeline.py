# tests/test_api_lease_pipeline.py
from __future__ import annotations

import base64

from sqlalchemy import select

from propertyflow.db import SessionLocal
from propertyflow.models import SignatureRequest

SIGNATURE = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"\x01" * 24).decode()


def _headers(slug: str = "acme", email: str = "owner@acme.test", role: str = "owner") -> dict[str, str]:
    return {
        "X-Landlord-Slug": slug,
        "X-User-Email": email,
        "X-User-Role": role,
    }


def _landlord_token(lease_id: int) -> str:
    db = SessionLocal()
    try:
        return db.scalar(
            select(SignatureRequest.token).where(SignatureRequest.lease_id == lease_id, SignatureRequest.role == "landlord")
        )
    finally:
        db.close()


def _submit(client, acme) -> int:
    r = client.post(
        "/api/public/acme/applications",
        json={"unit_id": acme.unit_id, "full_name": "Jane Doe", "email": "Jane@Example.com", "move_in_date": "2026-01-01"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "pending"
    return r.json()["id"]


def test_application_to_executed_lease_over_http(client, acme):
    units = client.get("/api/public/acme/units").json()
    assert {u["unit_name"] for u in units} == {"1A", "1B"}

    app_id = _submit(client, acme)

    r = client.post(f"/api/applications/{app_id}/approve", json={}, headers=_headers())
    assert r.status_code == 200, r.text
    approved = r.json()
    lease_id = approved["lease_id"]
    token = approved["signing_token"]

    units = client.get("/api/public/acme/units").json()
    assert [u["unit_name"] for u in units] == ["1B"]

    r = client.get(f"/api/sign/{token}")
    assert r.status_code == 200
    assert r.json()["document_type"] == "html_template"
    assert r.json()["lease_details"]["rent_amount"] == 1500.0

    r = client.get(f"/api/sign/{token}/document")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/pdf")
    assert r.content.startswith(b"%PDF")

    sign_body = {"signature_data_url": SIGNATURE, "signer_name": "Jane Doe", "signer_email": "jane@example.com", "consent": True}
    r = client.post(f"/api/sign/{token}", json=sign_body)
    assert r.status_code == 200, r.text
    assert r.json()["lease_status"] == "pending_signature"

    r = client.post(f"/api/sign/{token}", json=sign_body)
    assert r.status_code == 400
    assert r.json()["code"] == "ALREADY_SIGNED"

    landlord_body = {**sign_body, "signer_name": "Pat Owner", "signer_email": "ops@acme.test"}
    r = client.post(f"/api/sign/{_landlord_token(lease_id)}", json=landlord_body)
    assert r.status_code == 200, r.text
    assert r.json()["lease_status"] == "active"

    lease = client.get(f"/api/leases/{lease_id}", headers=_headers()).json()
    assert lease["status"] == "active"

    trail = client.get(f"/api/leases/{lease_id}/audit-trail", headers=_headers()).json()
    assert trail["verified"] is True
    assert trail["checked"] == len(trail["events"]) == 7
    assert trail["events"][-1]["event_type"] == "executed"

    payments = client.get("/api/rent/payments", headers=_headers(), params={"lease_id": lease_id})
    assert payments.status_code == 200, payments.text
    assert {p["charge_type"] for p in payments.json()} == {"first_month_rent", "security_deposit"}


def test_approval_errors_carry_codes(client, acme):
    app_id = _submit(client, acme)
    assert client.post(f"/api/applications/{app_id}/approve", json={}, headers=_headers()).status_code == 200

    r = client.post(f"/api/applications/{app_id}/approve", json={}, headers=_headers())
    assert r.status_code == 409
    assert r.json()["code"] == "APPLICATION_NOT_PENDING"

    r = client.post("/api/applications/424242/approve", json={}, headers=_headers())
    assert r.status_code == 404
    assert r.json()["code"] == "APPLICATION_NOT_FOUND"

    r = client.get("/api/sign/not-a-real-token")
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"


def test_staff_cannot_approve(client, acme):
    app_id = _submit(client, acme)
    r = client.post(f"/api/applications/{app_id}/approve", json={}, headers=_headers(email="clerk@acme.test", role="staff"))
    assert r.status_code == 403


def test_unit_that_is_taken_cannot_be_applied_for(client, acme):
    app_id = _submit(client, acme)
    client.post(f"/api/applications/{app_id}/approve", json={}, headers=_headers())

    r = client.post(
        "/api/public/acme/applications",
        json={"unit_id": acme.unit_id, "full_name": "Sam Roe", "email": "sam@example.com"},
    )
    assert r.status_code == 409
    assert r.json()["code"] == "UNIT_UNAVAILABLE"

    r = client.post("/api/public/nobody/applications", json={"unit_id": acme.unit_id, "full_name": "Sam", "email": "s@x.test"})
    assert r.status_code == 404


def test_other_landlord_cannot_see_lease_records(client, acme):
    app_id = _submit(client, acme)
    lease_id = client.post(f"/api/applications/{app_id}/approve", json={}, headers=_headers()).json()["lease_id"]

    intruder = _headers(slug="rival", email="boss@rival.test")
    assert client.get(f"/api/applications/{app_id}", headers=intruder).status_code == 404
    assert client.get(f"/api/leases/{lease_id}", headers=intruder).status_code == 404
    assert client.get(f"/api/leases/{lease_id}/audit-trail", headers=intruder).status_code == 404
    assert client.get(f"/api/properties/{acme.property_id}", headers=intruder).status_code == 404
    assert client.post(f"/api/applications/{app_id}/approve", json={}, headers=intruder).status_code == 404

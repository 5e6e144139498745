# tests/test_portfolio_and_feeds.py
from __future__ import annotations

from datetime import date

from propertyflow.middleware.structured_logging import redact_path
from propertyflow.models import Lease, Tenant

PDF = b"%PDF-1.4\n% uploaded lease\n%%EOF\n"


def _headers(email: str = "owner@acme.test", role: str = "owner", slug: str = "acme") -> dict[str, str]:
    return {"X-Landlord-Slug": slug, "X-User-Email": email, "X-User-Role": role}


def _mk_active_lease(db, acme) -> Lease:
    t = Tenant(landlord_id=acme.landlord_id, full_name="Tina Tenant", email="tina@example.com")
    db.add(t)
    db.flush()
    lease = Lease(
        landlord_id=acme.landlord_id,
        property_id=acme.property_id,
        unit_id=acme.unit_id,
        tenant_id=t.id,
        start_date=date(2026, 1, 1),
        end_date=date(2026, 12, 31),
        rent_amount=1500.0,
        status="active",
    )
    db.add(lease)
    db.commit()
    return lease


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.headers.get("X-Request-ID")

    assert client.get("/api/health", headers={"X-Request-ID": "trace-42"}).headers["X-Request-ID"] == "trace-42"
    replaced = client.get("/api/health", headers={"X-Request-ID": "x" * 300}).headers["X-Request-ID"]
    assert len(replaced) == 36


def test_signing_tokens_are_redacted_from_access_logs():
    assert redact_path("/api/sign/abc123") == "/api/sign/<token>"
    assert redact_path("/api/sign/abc123/document") == "/api/sign/<token>/document"
    assert redact_path("/api/leases/4") == "/api/leases/4"


def test_properties_and_units(client, db, acme):
    r = client.post(
        "/api/properties",
        json={"name": "Oak Flats", "street": "5 Oak Ave", "city": "Phoenix", "state": "az", "amenities": ["Pool", "Garage"]},
        headers=_headers(),
    )
    assert r.status_code == 200, r.text
    oak = r.json()
    assert oak["state"] == "AZ"
    assert oak["amenities"] == ["Pool", "Garage"]

    assert [p["name"] for p in client.get("/api/properties", headers=_headers()).json()] == ["Oak Flats", "Maple Court"]
    assert client.post("/api/properties", json={"name": "x"}, headers=_headers("clerk@acme.test", "staff")).status_code == 403

    r = client.post(f"/api/properties/{oak['id']}/units", json={"name": "101", "rent_amount": 1100}, headers=_headers())
    assert r.status_code == 200, r.text
    unit_id = r.json()["id"]
    assert client.post(f"/api/properties/{oak['id']}/units", json={"name": "102", "rent_amount": 0}, headers=_headers()).status_code == 422

    r = client.patch(f"/api/properties/units/{unit_id}", json={"name": "101", "rent_amount": 1150}, headers=_headers())
    assert r.json()["rent_amount"] == 1150.0

    r = client.patch(f"/api/properties/{oak['id']}", json={"name": "Oak Flats II"}, headers=_headers())
    assert r.json()["name"] == "Oak Flats II"
    assert r.json()["city"] == "Phoenix"

    # occupied units and properties are protected
    _mk_active_lease(db, acme)
    assert client.delete(f"/api/properties/units/{acme.unit_id}", headers=_headers()).status_code == 409
    r = client.patch(f"/api/properties/units/{acme.unit_id}", json={"name": "1A", "rent_amount": 1500, "is_available": True},
                     headers=_headers())
    assert r.status_code == 409
    assert client.delete(f"/api/properties/{acme.property_id}", headers=_headers()).status_code == 409

    tenants = client.get(f"/api/properties/{acme.property_id}/tenants", headers=_headers()).json()
    assert [t["full_name"] for t in tenants] == ["Tina Tenant"]

    assert client.delete(f"/api/properties/units/{unit_id}", headers=_headers()).json() == {"ok": True}
    assert client.delete(f"/api/properties/{oak['id']}", headers=_headers()).json() == {"ok": True}
    assert client.get(f"/api/properties/{oak['id']}", headers=_headers()).status_code == 404

    events = client.get("/api/workflow/events", params={"event_type": "property_created"}, headers=_headers()).json()
    assert [e["property_id"] for e in events] == [oak["id"]]


def test_tenants(client, db, acme):
    r = client.post("/api/tenants", json={"full_name": "Ray Renter", "email": " Ray@Example.COM "}, headers=_headers())
    assert r.status_code == 200, r.text
    ray = r.json()
    assert ray["email"] == "ray@example.com"

    r = client.patch(f"/api/tenants/{ray['id']}", json={"full_name": "Ray Renter", "phone": "555-0100"}, headers=_headers())
    assert r.json()["phone"] == "555-0100"

    assert client.get(f"/api/tenants/{ray['id']}", headers=_headers(slug="rival", email="boss@rival.test")).status_code == 404
    assert client.delete(f"/api/tenants/{ray['id']}", headers=_headers("clerk@acme.test", "staff")).status_code == 403

    lease = _mk_active_lease(db, acme)
    assert client.delete(f"/api/tenants/{lease.tenant_id}", headers=_headers()).status_code == 409
    assert client.delete(f"/api/tenants/{ray['id']}", headers=_headers()).json() == {"ok": True}

    audit = client.get("/api/audit", params={"entity_type": "Tenant"}, headers=_headers()).json()
    assert {a["action"] for a in audit} == {"tenant.create", "tenant.update", "tenant.delete"}


def test_maintenance_tickets_and_notifications(client, acme):
    r = client.post(
        "/api/maintenance",
        json={"title": "Burst pipe", "description": "Water everywhere", "unit_id": acme.unit_id, "priority": "emergency"},
        headers=_headers(),
    )
    assert r.status_code == 200, r.text
    ticket = r.json()
    assert ticket["status"] == "open"

    r = client.post("/api/maintenance", json={"title": "Squeaky door", "description": "Front door"}, headers=_headers())
    assert r.json()["priority"] == "medium"
    assert client.post("/api/maintenance", json={"title": " ", "description": "x"}, headers=_headers()).status_code == 400
    assert client.post("/api/maintenance", json={"title": "t", "description": "d", "priority": "whenever"},
                       headers=_headers()).status_code == 422

    urgent = client.get("/api/maintenance", params={"priority": "emergency"}, headers=_headers()).json()
    assert [t["id"] for t in urgent] == [ticket["id"]]
    by_property = client.get("/api/maintenance", params={"property_id": acme.property_id}, headers=_headers()).json()
    assert [t["title"] for t in by_property] == ["Burst pipe"]

    r = client.patch(f"/api/maintenance/{ticket['id']}", json={"status": "resolved"}, headers=_headers())
    assert r.json()["status"] == "resolved"
    assert r.json()["resolved_at"] is not None
    r = client.patch(f"/api/maintenance/{ticket['id']}", json={"status": "open"}, headers=_headers())
    assert r.json()["resolved_at"] is None

    assert client.post(f"/api/maintenance/{ticket['id']}/assign", json={"appointment_id": 999}, headers=_headers()).status_code == 404
    assert client.get(f"/api/maintenance/{ticket['id']}", headers=_headers(slug="rival", email="boss@rival.test")).status_code == 404

    notes = client.get("/api/notifications", params={"unread_only": True}, headers=_headers()).json()
    assert [n["title"] for n in notes] == ["Emergency maintenance request"]
    assert "unit 1A" in notes[0]["message"]

    # another landlord cannot mark ours as read
    r = client.post("/api/notifications/mark-read", json={"ids": [notes[0]["id"]]}, headers=_headers(slug="rival", email="boss@rival.test"))
    assert r.json()["updated"] == 0

    r = client.post("/api/notifications/mark-read", json={"ids": [notes[0]["id"]]}, headers=_headers())
    assert r.json() == {"ok": True, "updated": 1}
    assert client.get("/api/notifications", params={"unread_only": True}, headers=_headers()).json() == []

    events = client.get("/api/workflow/events", params={"event_type": "maintenance_ticket_created"}, headers=_headers()).json()
    assert len(events) == 2
    assert {e["payload"]["priority"] for e in events} == {"emergency", "medium"}


def test_documents_and_file_access(client, acme, storage_root):
    r = client.post(
        "/api/documents",
        files={"file": ("nv-lease.pdf", PDF, "application/pdf")},
        data={"doc_type": "lease", "state": "nv"},
        headers=_headers(),
    )
    assert r.status_code == 200, r.text
    doc = r.json()
    assert doc["name"] == "nv-lease.pdf"
    assert doc["state"] == "NV"
    assert doc["file_size"] == len(PDF)
    assert len(doc["document_hash"]) == 64
    assert doc["is_fields_configured"] is False

    r = client.post("/api/documents", files={"file": ("x.pdf", PDF, "application/pdf")}, data={"doc_type": "poem"}, headers=_headers())
    assert r.status_code == 400

    r = client.get(f"/api/documents/{doc['id']}/download", headers=_headers())
    assert r.status_code == 200
    assert r.content == PDF

    assert client.get(doc["file_url"], headers=_headers()).content == PDF
    assert client.get(doc["file_url"], headers=_headers(slug="rival", email="boss@rival.test")).status_code == 404
    assert client.get("/api/files/landlords/1/documents/unknown.pdf", headers=_headers()).status_code == 404

    r = client.put(f"/api/documents/{doc['id']}/fields", json={"signature_fields": [{"id": "l1", "role": "landlord", "page": 1, "x": 10, "y": 10}]},
                   headers=_headers())
    assert r.status_code == 400
    r = client.put(f"/api/documents/{doc['id']}/fields", json={"signature_fields": [{"id": "t1", "role": "tenant", "page": 1, "x": 10, "y": 10}]},
                   headers=_headers())
    assert r.json()["is_fields_configured"] is True

    assert client.delete(f"/api/documents/{doc['id']}", headers=_headers()).json() == {"ok": True}
    assert client.get("/api/documents", headers=_headers()).json() == []
    # archived, still downloadable for leases that point at it
    assert client.get(f"/api/documents/{doc['id']}/download", headers=_headers()).status_code == 200

# tests/test_auth_team_templates.py
from __future__ import annotations

from propertyflow.models import LeaseTemplate, Property
from propertyflow.services.auth_service import create_access_token, hash_password, slugify, verify_password
from propertyflow.services.lease_templates import resolve_template_for_property

PDF = b"%PDF-1.4\n1 0 obj <<>> endobj\ntrailer <<>>\n%%EOF\n"


def _headers(email: str = "owner@acme.test", role: str = "owner", slug: str = "acme") -> dict[str, str]:
    return {"X-Landlord-Slug": slug, "X-User-Email": email, "X-User-Role": role}


def test_password_hashing_and_slugs():
    stored = hash_password("correct horse")
    assert stored.startswith("pbkdf2_sha256$")
    assert verify_password("correct horse", stored)
    assert not verify_password("wrong horse", stored)
    assert not verify_password("anything", None)
    assert not verify_password("anything", "md5$nope")

    assert slugify("  Acme Rentals, LLC ") == "acme-rentals-llc"
    assert slugify("!!!") == "landlord"


def test_register_login_and_me(client):
    body = {"email": "Founder@Example.com", "password": "s3cret-pass", "landlord_name": "Blue Door Homes"}
    r = client.post("/api/auth/register", json=body)
    assert r.status_code == 200, r.text
    out = r.json()
    assert out["landlord_slug"] == "blue-door-homes"
    assert out["role"] == "owner"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {out['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "founder@example.com"
    assert me.json()["landlord_slug"] == "blue-door-homes"

    r = client.post("/api/auth/register", json=body)
    assert r.status_code == 400
    assert r.json()["detail"] == "Email already registered"

    r = client.post("/api/auth/register", json={**body, "email": "other@example.com"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Landlord slug already exists"

    assert client.post("/api/auth/register", json={**body, "email": "x@example.com", "password": "short"}).status_code == 422

    r = client.post("/api/auth/login", json={"email": "founder@example.com", "password": "s3cret-pass"})
    assert r.status_code == 200
    assert r.json()["landlord_slug"] == "blue-door-homes"

    assert client.post("/api/auth/login", json={"email": "founder@example.com", "password": "nope"}).status_code == 401
    r = client.post("/api/auth/login", json={"email": "founder@example.com", "password": "s3cret-pass", "landlord_slug": "acme"})
    assert r.status_code == 403


def test_bad_and_expired_tokens_are_rejected(client, acme):
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401

    expired = create_access_token(user_id=acme.owner_id, landlord_slug="acme", role="owner", minutes=-5)
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Token expired"

    assert client.get("/api/auth/me").status_code == 401


def test_team_management(client, acme):
    team = client.get("/api/landlord/team", headers=_headers()).json()
    assert [(m["email"], m["role"]) for m in team] == [("owner@acme.test", "owner")]

    r = client.post("/api/landlord/team", json={"email": "Mia@Acme.test", "role": "manager"}, headers=_headers())
    assert r.status_code == 200, r.text
    mia_id = r.json()["user_id"]

    assert client.post("/api/landlord/team", json={"email": "mia@acme.test"}, headers=_headers()).status_code == 409
    assert client.post("/api/landlord/team", json={"email": "z@acme.test"}, headers=_headers("mia@acme.test")).status_code == 403

    r = client.patch(f"/api/landlord/team/{acme.owner_id}", json={"role": "staff"}, headers=_headers())
    assert r.status_code == 409
    assert client.delete(f"/api/landlord/team/{acme.owner_id}", headers=_headers()).status_code == 409

    r = client.patch(f"/api/landlord/team/{mia_id}", json={"role": "staff"}, headers=_headers())
    assert r.json() == {"ok": True, "user_id": mia_id, "role": "staff"}

    assert client.delete(f"/api/landlord/team/{mia_id}", headers=_headers()).json() == {"ok": True}
    assert client.delete(f"/api/landlord/team/{mia_id}", headers=_headers()).status_code == 404

    audit = client.get("/api/audit", headers=_headers()).json()
    assert {"team.add", "team.role", "team.remove"} <= {a["action"] for a in audit}


def test_landlord_settings(client, acme):
    s = client.get("/api/landlord/settings", headers=_headers()).json()
    assert s["reminder_days_before"] == [7, 3, 1]
    assert s["security_deposit_months"] == 1.0
    assert s["late_fee_amount"] == 50.0

    r = client.patch(
        "/api/landlord/settings",
        json={"reminder_days_before": [1, 5, 5], "late_fees_enabled": True, "late_fee_type": "percent"},
        headers=_headers(),
    )
    assert r.status_code == 200, r.text
    assert r.json()["reminder_days_before"] == [5, 1]
    assert r.json()["late_fee_type"] == "percent"

    assert client.patch("/api/landlord/settings", json={"reminder_days_before": [-1]}, headers=_headers()).status_code == 400
    assert client.patch("/api/landlord/settings", json={"late_fee_type": "weekly"}, headers=_headers()).status_code == 422
    r = client.patch("/api/landlord/settings", json={"name": "x"}, headers=_headers("clerk@acme.test", "staff"))
    assert r.status_code == 403


def test_builder_templates(client, db, acme):
    r = client.post(
        "/api/lease-templates",
        json={"name": "Pets OK", "builder_config": {"pets_allowed": True, "pet_deposit": 300}, "is_default": True},
        headers=_headers(),
    )
    assert r.status_code == 200, r.text
    pets = r.json()
    assert pets["is_default"] is True
    assert pets["builder_config"] == {"pet_deposit": 300, "pets_allowed": True}

    templates = client.get("/api/lease-templates", headers=_headers()).json()
    assert [(t["name"], t["is_default"]) for t in templates] == [("Pets OK", True), ("Standard", False)]

    r = client.post("/api/lease-templates", json={"name": "Bad", "builder_config": {"moon_rent": 1}}, headers=_headers())
    assert r.status_code == 400
    assert "moon_rent" in r.json()["detail"]

    r = client.post("/api/lease-templates", json={"name": "No file", "template_type": "uploaded_pdf"}, headers=_headers())
    assert r.status_code == 400

    r = client.post(f"/api/lease-templates/{acme.template_id}/default", headers=_headers())
    assert r.json()["is_default"] is True
    db.expire_all()
    assert db.get(LeaseTemplate, pets["id"]).is_default is False

    r = client.post(f"/api/lease-templates/{pets['id']}/assign", json={"property_ids": [acme.property_id, 9999]}, headers=_headers())
    assert r.json()["property_ids"] == [acme.property_id]
    db.expire_all()
    assert resolve_template_for_property(db, landlord_id=acme.landlord_id, property_id=acme.property_id).id == pets["id"]

    r = client.delete(f"/api/lease-templates/properties/{acme.property_id}", headers=_headers())
    assert r.json() == {"ok": True, "removed": True}
    db.expire_all()
    assert resolve_template_for_property(db, landlord_id=acme.landlord_id, property_id=acme.property_id).id == acme.template_id

    r = client.patch(f"/api/lease-templates/{pets['id']}", json={"name": "Pets Welcome"}, headers=_headers())
    assert r.json()["name"] == "Pets Welcome"
    assert client.patch(f"/api/lease-templates/{pets['id']}", json={"name": "x"}, headers=_headers("clerk@acme.test", "staff")).status_code == 403

    assert client.get(f"/api/lease-templates/{pets['id']}", headers=_headers(slug="rival", email="boss@rival.test")).status_code == 404
    assert client.delete(f"/api/lease-templates/{pets['id']}", headers=_headers()).json() == {"ok": True}
    assert client.get(f"/api/lease-templates/{pets['id']}", headers=_headers()).status_code == 404


def test_uploaded_pdf_template(client, db, acme, storage_root):
    r = client.post(
        "/api/lease-templates/upload",
        files={"file": ("lease.pdf", PDF, "application/pdf")},
        data={"name": "Our own lease", "signature_fields_json": '[{"role": "tenant", "page": 1, "x": 100, "y": 600}]'},
        headers=_headers(),
    )
    assert r.status_code == 200, r.text
    tpl = r.json()
    assert tpl["template_type"] == "uploaded_pdf"
    assert tpl["file_key"].startswith(f"landlords/{acme.landlord_id}/templates/")
    assert tpl["signature_fields"][0]["role"] == "tenant"
    assert (storage_root / tpl["file_key"]).read_bytes() == PDF

    r = client.post(
        "/api/lease-templates/upload",
        files={"file": ("lease.txt", b"hello", "text/plain")},
        data={"name": "Not a pdf"},
        headers=_headers(),
    )
    assert r.status_code == 400

    r = client.post(
        "/api/lease-templates/upload",
        files={"file": ("lease.pdf", PDF, "application/pdf")},
        data={"name": "Broken fields", "signature_fields_json": "{not json"},
        headers=_headers(),
    )
    assert r.status_code == 400

    other = Property(landlord_id=acme.landlord_id, name="Oak Flats", street="5 Oak Ave", city="Phoenix", state="AZ")
    db.add(other)
    db.commit()
    assert resolve_template_for_property(db, landlord_id=acme.landlord_id, property_id=other.id).id == acme.template_id

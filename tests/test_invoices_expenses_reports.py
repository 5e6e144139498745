# tests/test_invoices_expenses_reports.py
from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import select

from propertyflow.errors import InvoiceError
from propertyflow.models import AppUser, Lease, Notification, RentPayment, Tenant
from propertyflow.services.invoices import create_invoice, get_property_tenants, list_tenant_invoices, mark_invoice_paid


def dev_headers(slug: str = "acme", email: str = "owner@acme.test") -> dict[str, str]:
    return {"X-Landlord-Slug": slug, "X-User-Email": email, "X-User-Role": "owner"}


def _mk_tenant(db, acme, *, with_login: bool = False) -> Tenant:
    user_id = None
    if with_login:
        user = AppUser(email="tina@example.com", display_name="Tina")
        db.add(user)
        db.flush()
        user_id = user.id
    t = Tenant(landlord_id=acme.landlord_id, user_id=user_id, full_name="Tina Tenant", email="tina@example.com")
    db.add(t)
    db.commit()
    return t


def _mk_lease(db, acme, tenant) -> Lease:
    lease = Lease(
        landlord_id=acme.landlord_id,
        property_id=acme.property_id,
        unit_id=acme.unit_id,
        tenant_id=tenant.id,
        start_date=date(2026, 1, 1),
        end_date=date(2026, 12, 31),
        rent_amount=1500.0,
        status="active",
    )
    db.add(lease)
    db.commit()
    return lease


def test_invoice_rules(db, acme, outbox):
    tenant = _mk_tenant(db, acme, with_login=True)
    kw = dict(landlord_id=acme.landlord_id, property_id=acme.property_id, tenant_id=tenant.id, due_date=date(2026, 2, 1))

    with pytest.raises(InvoiceError, match="greater than 0"):
        create_invoice(db, amount=0, reason="Broken window", **kw)
    with pytest.raises(InvoiceError, match="at least 3"):
        create_invoice(db, amount=80, reason=" x ", **kw)
    with pytest.raises(InvoiceError, match="Due date"):
        create_invoice(db, amount=80, reason="Broken window", **{**kw, "due_date": None})
    with pytest.raises(InvoiceError) as ei:
        create_invoice(db, amount=80, reason="Broken window", **{**kw, "property_id": 9999})
    assert ei.value.status_code == 404

    inv = create_invoice(db, amount=80.5, reason="Broken window", **kw)
    assert inv.amount == 80.5
    assert inv.status == "pending"
    assert outbox[-1]["to"] == ["tina@example.com"]
    assert "$80.50" in outbox[-1]["text"]

    note = db.scalar(select(Notification).where(Notification.user_id == tenant.user_id))
    assert note.kind == "invoice"

    assert [i.id for i in list_tenant_invoices(db, user_id=tenant.user_id)] == [inv.id]

    mark_invoice_paid(db, invoice=inv, method="check")
    assert inv.status == "paid"
    assert inv.payment_method == "check"
    with pytest.raises(InvoiceError, match="already paid"):
        mark_invoice_paid(db, invoice=inv)


def test_property_tenants_come_from_active_leases(db, acme):
    tenant = _mk_tenant(db, acme)
    assert get_property_tenants(db, landlord_id=acme.landlord_id, property_id=acme.property_id) == []

    lease = _mk_lease(db, acme, tenant)
    rows = get_property_tenants(db, landlord_id=acme.landlord_id, property_id=acme.property_id)
    assert rows == [
        {"tenant_id": tenant.id, "full_name": "Tina Tenant", "email": "tina@example.com", "lease_id": lease.id, "unit_id": acme.unit_id}
    ]


def test_invoices_over_http(client, db, acme):
    tenant = _mk_tenant(db, acme, with_login=True)
    body = {"property_id": acme.property_id, "tenant_id": tenant.id, "amount": 45, "reason": "Lost key", "due_date": "2026-03-01"}

    r = client.post("/api/invoices", json={**body, "amount": -1}, headers=dev_headers())
    assert r.status_code == 400
    assert r.json()["code"] == "INVOICE_ERROR"

    r = client.post("/api/invoices", json=body, headers=dev_headers())
    assert r.status_code == 200, r.text
    inv_id = r.json()["id"]

    assert [i["id"] for i in client.get("/api/invoices", headers=dev_headers()).json()] == [inv_id]
    assert client.get("/api/invoices", params={"status": "paid"}, headers=dev_headers()).json() == []

    mine = client.get("/api/invoices/mine", headers={"X-User-Email": "tina@example.com"}).json()
    assert [i["reason"] for i in mine] == ["Lost key"]

    assert client.get(f"/api/invoices/{inv_id}", headers=dev_headers(slug="rival", email="boss@rival.test")).status_code == 404

    r = client.post(f"/api/invoices/{inv_id}/mark-paid", json={"payment_method": "cash"}, headers=dev_headers())
    assert r.json()["status"] == "paid"

    r = client.post(f"/api/invoices/{inv_id}/cancel", headers=dev_headers())
    assert r.status_code == 400
    assert "paid" in r.json()["detail"]


def test_expenses_and_financial_report_over_http(client, db, acme):
    tenant = _mk_tenant(db, acme)
    lease = _mk_lease(db, acme, tenant)
    db.add_all(
        [
            RentPayment(landlord_id=acme.landlord_id, lease_id=lease.id, tenant_id=tenant.id, amount=1500.0,
                        due_date=date(2026, 1, 1), status="paid"),
            RentPayment(landlord_id=acme.landlord_id, lease_id=lease.id, tenant_id=tenant.id, amount=1500.0,
                        due_date=date(2026, 2, 1), status="pending"),
        ]
    )
    db.commit()

    cats = client.get("/api/expenses/categories", headers=dev_headers()).json()
    assert "repairs" in cats and "other" in cats

    r = client.post("/api/expenses", json={"property_id": acme.property_id, "amount": 0}, headers=dev_headers())
    assert r.status_code == 422

    r = client.post(
        "/api/expenses",
        json={"property_id": acme.property_id, "amount": 200, "category": "repairs", "incurred_at": "2026-01-15"},
        headers=dev_headers(),
    )
    assert r.status_code == 200, r.text
    r = client.post(
        "/api/expenses",
        json={"property_id": acme.property_id, "amount": 100, "category": "yacht", "incurred_at": "2026-02-03"},
        headers=dev_headers(),
    )
    assert r.json()["category"] == "other"
    other_id = r.json()["id"]

    rows = client.get("/api/expenses", params={"category": "repairs"}, headers=dev_headers()).json()
    assert [e["amount"] for e in rows] == [200.0]

    r = client.get("/api/reports/financial", params={"period": "yearly", "year": 2026}, headers=dev_headers())
    assert r.status_code == 200, r.text
    report = r.json()
    assert report["label"] == "2026"
    assert report["summary"]["total_income"] == 1500.0
    assert report["summary"]["total_expenses"] == 300.0
    assert report["summary"]["net_income"] == 1200.0
    assert report["summary"]["outstanding"] == 1500.0
    assert report["expenses_by_category"] == {"repairs": 200.0, "other": 100.0}
    assert report["metrics"]["collection_rate_pct"] == 50.0
    assert len(report["monthly"]) == 12

    r = client.get("/api/reports/financial", params={"period": "monthly", "year": 2026, "month": 1, "format": "csv"},
                   headers=dev_headers())
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "2026-01" in r.headers["content-disposition"]
    assert "Total Income,$1500.00" in r.text
    assert "Total Expenses,$200.00" in r.text

    assert client.get("/api/reports/financial", params={"period": "weekly"}, headers=dev_headers()).status_code == 400

    assert client.delete(f"/api/expenses/{other_id}", headers=dev_headers(slug="rival", email="boss@rival.test")).status_code == 404
    assert client.delete(f"/api/expenses/{other_id}", headers=dev_headers()).json() == {"ok": True}
    report = client.get("/api/reports/financial", params={"year": 2026}, headers=dev_headers()).json()
    assert report["summary"]["total_expenses"] == 200.0

# tests/conftest.py
from __future__ import annotations

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="propertyflow-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/test.db"
os.environ["STORAGE_ROOT"] = os.path.join(_TMP, "storage")
os.environ["AUTH_MODE"] = "dev"
os.environ["APP_ENV"] = "local"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("STRIPE_SECRET_KEY", None)

import pytest  # noqa: E402

from propertyflow import models  # noqa: E402,F401
from propertyflow.config import settings  # noqa: E402
from propertyflow.db import Base, SessionLocal, engine  # noqa: E402
from propertyflow.services.storage import get_storage  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def storage_root(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "storage_root", str(tmp_path / "storage"))
    get_storage.cache_clear()
    yield tmp_path / "storage"
    get_storage.cache_clear()


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Captured outgoing mail: one dict per delivered message."""
    sent: list[dict] = []

    def _fake_deliver(recipients, subject, text_body, html_body=None, attachments=None):
        sent.append(
            {
                "to": list(recipients),
                "subject": subject,
                "text": text_body,
                "html": html_body,
                "attachments": list(attachments or []),
            }
        )
        return True

    monkeypatch.setattr("propertyflow.services.notifications._deliver", _fake_deliver)
    return sent


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from propertyflow.main import create_app

    return TestClient(create_app())


def dev_headers(slug: str = "acme", email: str = "owner@acme.test", role: str = "owner") -> dict[str, str]:
    return {
        "X-Landlord-Slug": slug,
        "X-User-Email": email,
        "X-User-Role": role,
    }


@pytest.fixture
def acme(db):
    """
    One landlord with an owner login, a Reno property with two units and a
    default builder lease template.
    """
    from types import SimpleNamespace

    from propertyflow.models import AppUser, Landlord, LandlordMembership, LeaseTemplate, Property, Unit

    landlord = Landlord(slug="acme", name="Acme Rentals LLC", company_email="ops@acme.test")
    owner = AppUser(email="owner@acme.test", display_name="owner")
    db.add_all([landlord, owner])
    db.flush()
    db.add(LandlordMembership(landlord_id=landlord.id, user_id=owner.id, role="owner"))

    prop = Property(
        landlord_id=landlord.id,
        name="Maple Court",
        street="100 Maple St",
        city="Reno",
        state="NV",
        zip_code="89501",
        year_built=1995,
    )
    db.add(prop)
    db.flush()
    unit = Unit(landlord_id=landlord.id, property_id=prop.id, name="1A", rent_amount=1500.0)
    spare = Unit(landlord_id=landlord.id, property_id=prop.id, name="1B", rent_amount=1400.0)
    template = LeaseTemplate(landlord_id=landlord.id, name="Standard", template_type="builder", is_default=True,
                             builder_config_json="{}")
    db.add_all([unit, spare, template])
    db.commit()

    return SimpleNamespace(
        landlord_id=landlord.id,
        owner_id=owner.id,
        property_id=prop.id,
        unit_id=unit.id,
        spare_unit_id=spare.id,
        template_id=template.id,
    )

"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-01
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column("created_at", sa.DateTime(), nullable=False)


def upgrade():
    # ---- accounts / team ----
    op.create_table(
        "landlords",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("slug", sa.String(length=80), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("company_name", sa.String(length=160), nullable=True),
        sa.Column("company_address", sa.String(length=255), nullable=True),
        sa.Column("company_email", sa.String(length=200), nullable=True),
        sa.Column("company_phone", sa.String(length=40), nullable=True),
        sa.Column("security_deposit_months", sa.Float(), nullable=False, server_default="1"),
        sa.Column("last_month_rent_required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("pet_deposit_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("pet_deposit_amount", sa.Float(), nullable=True),
        sa.Column("pet_rent_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("pet_rent_amount", sa.Float(), nullable=True),
        sa.Column("cleaning_fee_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("cleaning_fee_amount", sa.Float(), nullable=True),
        sa.Column("rent_reminders_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("reminder_days_before_json", sa.String(length=80), nullable=False, server_default="[7, 3, 1]"),
        sa.Column("late_fees_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("late_fee_grace_days", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("late_fee_type", sa.String(length=20), nullable=False, server_default="flat"),
        sa.Column("late_fee_amount", sa.Float(), nullable=False, server_default="50"),
        _created_at(),
    )
    op.create_index("ix_landlords_slug", "landlords", ["slug"], unique=True)

    op.create_table(
        "app_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("display_name", sa.String(length=160), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        _created_at(),
    )
    op.create_index("ix_app_users_email", "app_users", ["email"], unique=True)

    op.create_table(
        "landlord_memberships",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="owner"),
        _created_at(),
        sa.UniqueConstraint("landlord_id", "user_id", name="uq_landlord_memberships_landlord_user"),
    )
    op.create_index("ix_landlord_memberships_landlord_id", "landlord_memberships", ["landlord_id"])
    op.create_index("ix_landlord_memberships_user_id", "landlord_memberships", ["user_id"])

    # ---- portfolio ----
    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("street", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("zip_code", sa.String(length=10), nullable=True),
        sa.Column("property_type", sa.String(length=60), nullable=False, server_default="multi_family"),
        sa.Column("year_built", sa.Integer(), nullable=True),
        sa.Column("amenities_json", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_properties_landlord_id", "properties", ["landlord_id"])

    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("unit_type", sa.String(length=60), nullable=False, server_default="apartment"),
        sa.Column("bedrooms", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("bathrooms", sa.Float(), nullable=False, server_default="1"),
        sa.Column("rent_amount", sa.Float(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
    )
    op.create_index("ix_units_landlord_id", "units", ["landlord_id"])
    op.create_index("ix_units_property_id", "units", ["property_id"])

    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("full_name", sa.String(length=160), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_tenants_landlord_id", "tenants", ["landlord_id"])
    op.create_index("ix_tenants_email", "tenants", ["email"])

    op.create_table(
        "rental_applications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=True),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=True),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=True),
        sa.Column("full_name", sa.String(length=160), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("move_in_date", sa.Date(), nullable=True),
        sa.Column("monthly_income", sa.Float(), nullable=True),
        sa.Column("employment_status", sa.String(length=60), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("admin_response", sa.Text(), nullable=True),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_rental_applications_landlord_id", "rental_applications", ["landlord_id"])
    op.create_index("ix_rental_applications_property_id", "rental_applications", ["property_id"])
    op.create_index("ix_rental_applications_unit_id", "rental_applications", ["unit_id"])

    # ---- trust / feed ----
    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_audit_events_landlord_id", "audit_events", ["landlord_id"])

    op.create_table(
        "workflow_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("event_type", sa.String(length=80), nullable=False),
        sa.Column("payload_json", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_workflow_events_landlord_id", "workflow_events", ["landlord_id"])
    op.create_index("ix_workflow_events_property_id", "workflow_events", ["property_id"])
    op.create_index("ix_workflow_events_event_type", "workflow_events", ["event_type"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("kind", sa.String(length=60), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("action_url", sa.String(length=500), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_notifications_landlord_id", "notifications", ["landlord_id"])
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    # ---- lease documents ----
    op.create_table(
        "lease_templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("template_type", sa.String(length=20), nullable=False, server_default="builder"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("builder_config_json", sa.Text(), nullable=True),
        sa.Column("file_key", sa.String(length=300), nullable=True),
        sa.Column("signature_fields_json", sa.Text(), nullable=True),
        sa.Column("merge_fields_json", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_lease_templates_landlord_id", "lease_templates", ["landlord_id"])

    op.create_table(
        "property_lease_templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "lease_template_id",
            sa.Integer(),
            sa.ForeignKey("lease_templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _created_at(),
        sa.UniqueConstraint("property_id", name="uq_property_lease_templates_property"),
    )
    op.create_index("ix_property_lease_templates_landlord_id", "property_lease_templates", ["landlord_id"])
    op.create_index("ix_property_lease_templates_lease_template_id", "property_lease_templates", ["lease_template_id"])

    op.create_table(
        "legal_documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("doc_type", sa.String(length=40), nullable=False, server_default="lease"),
        sa.Column("category", sa.String(length=40), nullable=False, server_default="uploaded"),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("file_key", sa.String(length=300), nullable=False),
        sa.Column("file_type", sa.String(length=80), nullable=False, server_default="application/pdf"),
        sa.Column("file_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("document_hash", sa.String(length=64), nullable=True),
        sa.Column("is_template", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_fields_configured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("signature_fields_json", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_legal_documents_landlord_id", "legal_documents", ["landlord_id"])

    op.create_table(
        "leases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("template_id", sa.Integer(), sa.ForeignKey("lease_templates.id"), nullable=True),
        sa.Column("legal_document_id", sa.Integer(), sa.ForeignKey("legal_documents.id"), nullable=True),
        sa.Column("application_id", sa.Integer(), sa.ForeignKey("rental_applications.id"), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("rent_amount", sa.Float(), nullable=False),
        sa.Column("billing_day_of_month", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="draft"),
        sa.Column("generated_from", sa.String(length=20), nullable=False, server_default="manual"),
        sa.Column("lease_data_json", sa.Text(), nullable=True),
        sa.Column("tenant_signed_at", sa.DateTime(), nullable=True),
        sa.Column("landlord_signed_at", sa.DateTime(), nullable=True),
        sa.Column("terminated_at", sa.DateTime(), nullable=True),
        sa.Column("termination_reason", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_leases_landlord_id", "leases", ["landlord_id"])
    op.create_index("ix_leases_property_id", "leases", ["property_id"])
    op.create_index("ix_leases_tenant_id", "leases", ["tenant_id"])
    op.create_index("ix_leases_landlord_unit_status", "leases", ["landlord_id", "unit_id", "status"])

    op.create_table(
        "signature_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("lease_id", sa.Integer(), sa.ForeignKey("leases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("document_id", sa.Integer(), sa.ForeignKey("legal_documents.id"), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("recipient_name", sa.String(length=160), nullable=True),
        sa.Column("recipient_email", sa.String(length=200), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="sent"),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("viewed_at", sa.DateTime(), nullable=True),
        sa.Column("signed_at", sa.DateTime(), nullable=True),
        sa.Column("reminder_sent_at", sa.DateTime(), nullable=True),
        sa.Column("signer_name", sa.String(length=160), nullable=True),
        sa.Column("signer_email", sa.String(length=200), nullable=True),
        sa.Column("signer_ip", sa.String(length=64), nullable=True),
        sa.Column("signer_user_agent", sa.String(length=500), nullable=True),
        sa.Column("signature_data_url", sa.Text(), nullable=True),
        sa.Column("signature_sha256", sa.String(length=64), nullable=True),
        sa.Column("signed_file_key", sa.String(length=300), nullable=True),
        sa.Column("document_hash", sa.String(length=64), nullable=True),
        _created_at(),
    )
    op.create_index("ix_signature_requests_landlord_id", "signature_requests", ["landlord_id"])
    op.create_index("ix_signature_requests_lease_id", "signature_requests", ["lease_id"])
    op.create_index("ix_signature_requests_token", "signature_requests", ["token"], unique=True)

    op.create_table(
        "lease_audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("lease_id", sa.Integer(), sa.ForeignKey("leases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(length=40), nullable=False),
        sa.Column("actor", sa.String(length=80), nullable=False, server_default="system"),
        sa.Column("actor_role", sa.String(length=20), nullable=False, server_default="system"),
        sa.Column("actor_name", sa.String(length=160), nullable=True),
        sa.Column("actor_email", sa.String(length=200), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("document_hash", sa.String(length=64), nullable=True),
        sa.Column("prev_hash", sa.String(length=64), nullable=True),
        sa.Column("event_hash", sa.String(length=64), nullable=False),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("lease_id", "seq", name="uq_lease_audit_events_lease_seq"),
    )
    op.create_index("ix_lease_audit_events_landlord_id", "lease_audit_events", ["landlord_id"])
    op.create_index("ix_lease_audit_events_lease_id", "lease_audit_events", ["lease_id"])

    # ---- money ----
    op.create_table(
        "rent_payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("lease_id", sa.Integer(), sa.ForeignKey("leases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("charge_type", sa.String(length=40), nullable=False, server_default="rent"),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("payment_method", sa.String(length=40), nullable=True),
        sa.Column("late_fee_for_id", sa.Integer(), sa.ForeignKey("rent_payments.id"), nullable=True),
        _created_at(),
        sa.UniqueConstraint("lease_id", "charge_type", "due_date", name="uq_rent_payments_lease_type_due"),
    )
    op.create_index("ix_rent_payments_landlord_id", "rent_payments", ["landlord_id"])
    op.create_index("ix_rent_payments_lease_id", "rent_payments", ["lease_id"])
    op.create_index("ix_rent_payments_tenant_id", "rent_payments", ["tenant_id"])
    op.create_index("ix_rent_payments_due_date", "rent_payments", ["due_date"])

    op.create_table(
        "recurring_charges",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("lease_id", sa.Integer(), sa.ForeignKey("leases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("charge_type", sa.String(length=40), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("day_of_month", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("next_post_date", sa.Date(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_recurring_charges_landlord_id", "recurring_charges", ["landlord_id"])
    op.create_index("ix_recurring_charges_lease_id", "recurring_charges", ["lease_id"])

    op.create_table(
        "rent_reminder_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column(
            "rent_payment_id",
            sa.Integer(),
            sa.ForeignKey("rent_payments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("days_before", sa.Integer(), nullable=False),
        sa.Column("sent_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("rent_payment_id", "days_before", name="uq_rent_reminder_logs_payment_offset"),
    )
    op.create_index("ix_rent_reminder_logs_landlord_id", "rent_reminder_logs", ["landlord_id"])

    op.create_table(
        "tenant_invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("lease_id", sa.Integer(), sa.ForeignKey("leases.id"), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("reason", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("payment_method", sa.String(length=40), nullable=True),
        _created_at(),
    )
    op.create_index("ix_tenant_invoices_landlord_id", "tenant_invoices", ["landlord_id"])
    op.create_index("ix_tenant_invoices_property_id", "tenant_invoices", ["property_id"])
    op.create_index("ix_tenant_invoices_tenant_id", "tenant_invoices", ["tenant_id"])

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("category", sa.String(length=60), nullable=False, server_default="other"),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("incurred_at", sa.Date(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_expenses_landlord_id", "expenses", ["landlord_id"])
    op.create_index("ix_expenses_property_id", "expenses", ["property_id"])

    # ---- contractors (before maintenance: tickets point at appointments) ----
    op.create_table(
        "contractor_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True, unique=True),
        sa.Column("business_name", sa.String(length=160), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("specialties_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("instant_booking_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("deposit_required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("deposit_amount", sa.Float(), nullable=True),
        sa.Column("deposit_percent", sa.Float(), nullable=True),
        sa.Column("cancellation_policy", sa.String(length=20), nullable=False, server_default="moderate"),
        sa.Column("cancellation_hours", sa.Integer(), nullable=False, server_default="24"),
        _created_at(),
    )

    op.create_table(
        "contractor_availability",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "contractor_id",
            sa.Integer(),
            sa.ForeignKey("contractor_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("weekly_schedule_json", sa.Text(), nullable=False),
        sa.Column("buffer_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("min_notice_hours", sa.Integer(), nullable=False, server_default="24"),
        sa.Column("max_advance_days", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("blocked_dates_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("contractor_id", name="uq_contractor_availability_contractor"),
    )

    op.create_table(
        "contractor_appointments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("contractor_id", sa.Integer(), sa.ForeignKey("contractor_profiles.id"), nullable=False),
        sa.Column("customer_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=True),
        sa.Column("service_type", sa.String(length=80), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("address", sa.String(length=300), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="confirmed"),
        sa.Column("deposit_amount", sa.Float(), nullable=True),
        sa.Column("deposit_paid", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("deposit_payment_id", sa.String(length=120), nullable=True),
        sa.Column("refund_amount", sa.Float(), nullable=True),
        sa.Column("refund_status", sa.String(length=20), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_by", sa.String(length=20), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("reminder_sent_at", sa.DateTime(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_contractor_appointments_customer_user_id", "contractor_appointments", ["customer_user_id"])
    op.create_index("ix_contractor_appointments_landlord_id", "contractor_appointments", ["landlord_id"])
    op.create_index(
        "ix_contractor_appointments_contractor_start",
        "contractor_appointments",
        ["contractor_id", "start_time"],
    )

    op.create_table(
        "maintenance_tickets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("landlord_id", sa.Integer(), sa.ForeignKey("landlords.id"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=True),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=True),
        sa.Column("appointment_id", sa.Integer(), sa.ForeignKey("contractor_appointments.id"), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
        sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_maintenance_tickets_landlord_id", "maintenance_tickets", ["landlord_id"])
    op.create_index("ix_maintenance_tickets_unit_id", "maintenance_tickets", ["unit_id"])


def downgrade():
    for table in (
        "maintenance_tickets",
        "contractor_appointments",
        "contractor_availability",
        "contractor_profiles",
        "expenses",
        "tenant_invoices",
        "rent_reminder_logs",
        "recurring_charges",
        "rent_payments",
        "lease_audit_events",
        "signature_requests",
        "leases",
        "legal_documents",
        "property_lease_templates",
        "lease_templates",
        "notifications",
        "workflow_events",
        "audit_events",
        "rental_applications",
        "tenants",
        "units",
        "properties",
        "landlord_memberships",
        "app_users",
        "landlords",
    ):
        op.drop_table(table)

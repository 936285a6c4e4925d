"""land registry core tables

Revision ID: 0001_land_registry_core
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_land_registry_core"
down_revision = None
branch_labels = None
depends_on = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
ACTIVE_REQUEST = "status IN ('PENDING_SELLER_CONFIRMATION', 'PENDING_ADMIN_APPROVAL')"


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=256), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("verification_status", sa.String(length=16), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("profile_json", JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_role_verification", "users", ["role", "verification_status"])

    op.create_table(
        "lands",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("asset_id", sa.String(length=32), nullable=False),

        sa.Column("state", sa.String(length=128), nullable=False),
        sa.Column("district", sa.String(length=128), nullable=False),
        sa.Column("taluka", sa.String(length=128), nullable=False),
        sa.Column("village", sa.String(length=128), nullable=False),
        sa.Column("survey_number", sa.String(length=64), nullable=False),
        sa.Column("sub_division", sa.String(length=64), nullable=True),
        sa.Column("pincode", sa.String(length=16), nullable=False),

        sa.Column("area_acres", sa.Numeric(14, 4), nullable=False),
        sa.Column("area_guntas", sa.Numeric(14, 4), nullable=False),
        sa.Column("area_sqft", sa.Numeric(18, 2), nullable=False),
        sa.Column("boundaries_json", JSON, nullable=False),
        sa.Column("land_type", sa.String(length=32), nullable=False),
        sa.Column("classification", sa.String(length=16), nullable=True),

        sa.Column("current_owner_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("added_by_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),

        sa.Column("status", sa.String(length=24), nullable=False),
        sa.Column("verification_status", sa.String(length=16), nullable=False),
        sa.Column("verified_by_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dispute_reason", sa.Text(), nullable=True),

        sa.Column("is_for_sale", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("asking_price", sa.Numeric(20, 2), nullable=True),
        sa.Column("price_per_sqft", sa.Numeric(20, 2), nullable=True),
        sa.Column("listed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("listing_description", sa.Text(), nullable=True),
        sa.Column("listing_images", JSON, nullable=False),

        sa.Column("is_digitalized", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("certificate_url", sa.String(length=512), nullable=True),
        sa.Column("certificate_hash", sa.String(length=128), nullable=True),
        sa.Column("qr_code", sa.String(length=512), nullable=True),
        sa.Column("digitalized_at", sa.DateTime(timezone=True), nullable=True),

        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        sa.CheckConstraint(
            "area_acres >= 0 AND area_guntas >= 0 AND area_sqft >= 0", name="ck_lands_area_nonnegative"
        ),
        sa.CheckConstraint("asking_price IS NULL OR asking_price > 0", name="ck_lands_asking_price_positive"),
    )
    op.create_index("uq_lands_asset_id", "lands", ["asset_id"], unique=True)
    op.create_index("ix_lands_location", "lands", ["village", "district", "state"])
    op.create_index("ix_lands_for_sale", "lands", ["is_for_sale"])
    op.create_index("ix_lands_current_owner", "lands", ["current_owner_id"])
    op.create_index("ix_lands_verification_status", "lands", ["verification_status"])

    op.create_table(
        "land_documents",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("land_id", sa.Uuid(as_uuid=True), sa.ForeignKey("lands.id", ondelete="CASCADE"), nullable=False),
        sa.Column("document_type", sa.String(length=32), nullable=False),
        sa.Column("document_number", sa.String(length=128), nullable=True),
        sa.Column("document_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("registration_office", sa.String(length=256), nullable=True),
        sa.Column("document_url", sa.String(length=512), nullable=True),
        sa.Column("content_hash", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_land_documents_land_id", "land_documents", ["land_id"])

    op.create_table(
        "buy_requests",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("land_id", sa.Uuid(as_uuid=True), sa.ForeignKey("lands.id"), nullable=False),
        sa.Column("seller_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("buyer_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("transaction_type", sa.String(length=16), nullable=False),
        sa.Column("agreed_price", sa.Numeric(20, 2), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("admin_comments", sa.Text(), nullable=True),
        sa.Column("decided_by_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("agreed_price > 0", name="ck_buy_requests_price_positive"),
        sa.CheckConstraint("buyer_id <> seller_id", name="ck_buy_requests_buyer_not_seller"),
    )
    op.create_index(
        "uq_buy_requests_one_active_per_land",
        "buy_requests",
        ["land_id"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_REQUEST),
        sqlite_where=sa.text(ACTIVE_REQUEST),
    )
    op.create_index("ix_buy_requests_status", "buy_requests", ["status"])
    op.create_index("ix_buy_requests_buyer", "buy_requests", ["buyer_id"])
    op.create_index("ix_buy_requests_seller", "buy_requests", ["seller_id"])

    op.create_table(
        "buy_request_timeline",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "buy_request_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("buy_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("event", sa.String(length=32), nullable=False),
        sa.Column("performed_by_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("buy_request_id", "seq", name="uq_buy_request_timeline_seq"),
    )

    op.create_table(
        "ownership_records",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("land_id", sa.Uuid(as_uuid=True), sa.ForeignKey("lands.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("owner_name", sa.String(length=256), nullable=False),
        sa.Column("from_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("to_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("document_reference", sa.String(length=256), nullable=True),
        sa.Column("buy_request_id", sa.Uuid(as_uuid=True), sa.ForeignKey("buy_requests.id"), nullable=True),
        sa.UniqueConstraint("land_id", "seq", name="uq_ownership_records_land_seq"),
    )
    op.create_index(
        "uq_ownership_records_one_open_tenure",
        "ownership_records",
        ["land_id"],
        unique=True,
        postgresql_where=sa.text("to_date IS NULL"),
        sqlite_where=sa.text("to_date IS NULL"),
    )
    op.create_index("ix_ownership_records_owner", "ownership_records", ["owner_id"])

    op.create_table(
        "land_likes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("land_id", sa.Uuid(as_uuid=True), sa.ForeignKey("lands.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "land_id", name="uq_land_likes_user_land"),
    )

    op.create_table(
        "otp_challenges",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("purpose", sa.String(length=32), nullable=False),
        sa.Column("code_hash", sa.String(length=128), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_otp_challenges_email_purpose", "otp_challenges", ["email", "purpose"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("actor_user_id", sa.String(length=64), nullable=True),
        sa.Column("actor_role", sa.String(length=16), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("land_id", sa.String(length=64), nullable=True),
        sa.Column("buy_request_id", sa.String(length=64), nullable=True),
        sa.Column("request_id", sa.String(length=128), nullable=True),
        sa.Column("payload_hash", sa.String(length=128), nullable=False),
        sa.Column("details_json", JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_land", "audit_logs", ["land_id"])
    op.create_index("ix_audit_logs_buy_request", "audit_logs", ["buy_request_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade():
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_buy_request", table_name="audit_logs")
    op.drop_index("ix_audit_logs_land", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_otp_challenges_email_purpose", table_name="otp_challenges")
    op.drop_table("otp_challenges")

    op.drop_table("land_likes")

    op.drop_index("ix_ownership_records_owner", table_name="ownership_records")
    op.drop_index("uq_ownership_records_one_open_tenure", table_name="ownership_records")
    op.drop_table("ownership_records")

    op.drop_table("buy_request_timeline")

    op.drop_index("ix_buy_requests_seller", table_name="buy_requests")
    op.drop_index("ix_buy_requests_buyer", table_name="buy_requests")
    op.drop_index("ix_buy_requests_status", table_name="buy_requests")
    op.drop_index("uq_buy_requests_one_active_per_land", table_name="buy_requests")
    op.drop_table("buy_requests")

    op.drop_table("land_documents")

    op.drop_index("ix_lands_verification_status", table_name="lands")
    op.drop_index("ix_lands_current_owner", table_name="lands")
    op.drop_index("ix_lands_for_sale", table_name="lands")
    op.drop_index("ix_lands_location", table_name="lands")
    op.drop_index("uq_lands_asset_id", table_name="lands")
    op.drop_table("lands")

    op.drop_index("ix_users_role_verification", table_name="users")
    op.drop_table("users")

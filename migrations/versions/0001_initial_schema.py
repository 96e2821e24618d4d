"""Initial schema: users, documents, signatures, audit trail, invites

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email", name="user_email_key"),
    )

    op.create_table(
        "document",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("original_name", sa.String(length=255), nullable=False),
        sa.Column("storage_key", sa.String(length=500), nullable=False),
        sa.Column("file_sha256", sa.String(length=64), nullable=True),
        sa.Column(
            "uploaded_by_id",
            sa.Integer(),
            sa.ForeignKey("user.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("upload_date", sa.DateTime(), nullable=False),
        sa.Column("is_signed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "original_document_id",
            sa.Uuid(),
            sa.ForeignKey("document.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("ix_document_uploaded_by_id", "document", ["uploaded_by_id"])
    op.create_index("ix_document_original_document_id", "document", ["original_document_id"])

    op.create_table(
        "signature",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "document_id",
            sa.Uuid(),
            sa.ForeignKey("document.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "signer_id",
            sa.Integer(),
            sa.ForeignKey("user.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("external_email", sa.String(length=255), nullable=True),
        sa.Column("page", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("x", sa.Float(), nullable=False),
        sa.Column("y", sa.Float(), nullable=False),
        sa.Column("display_width", sa.Float(), nullable=True),
        sa.Column("display_height", sa.Float(), nullable=True),
        sa.Column("signature_type", sa.String(length=10), nullable=False),
        sa.Column("signature_value", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False, server_default="pending"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("signed_at", sa.DateTime(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("status in ('pending','signed','rejected')", name="ck_signature_status"),
        sa.CheckConstraint("signature_type in ('text','image','draw')", name="ck_signature_type"),
        sa.CheckConstraint(
            "signer_id IS NOT NULL OR external_email IS NOT NULL",
            name="ck_signature_authenticator",
        ),
        sa.CheckConstraint("page >= 1", name="ck_signature_page"),
    )
    op.create_index("ix_signature_document_id", "signature", ["document_id"])
    op.create_index("ix_signature_signer_id", "signature", ["signer_id"])
    op.create_index("ix_signature_external_email", "signature", ["external_email"])
    op.create_index("ix_signature_status", "signature", ["status"])

    # No FK to document: the trail survives document deletion
    op.create_table(
        "audit_event",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("document_name", sa.String(length=255), nullable=False),
        sa.Column("document_owner_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=40), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("external_email", sa.String(length=255), nullable=True),
        sa.Column("signer_name", sa.String(length=255), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=False, server_default="unknown"),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("signature_type", sa.String(length=10), nullable=True),
        sa.Column("location_x", sa.Float(), nullable=True),
        sa.Column("location_y", sa.Float(), nullable=True),
        sa.Column("location_page", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=10), nullable=True),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_event_document_timestamp", "audit_event", ["document_id", "timestamp"])
    op.create_index("ix_audit_event_document_owner_id", "audit_event", ["document_owner_id"])
    op.create_index("ix_audit_event_user_id", "audit_event", ["user_id"])
    op.create_index("ix_audit_event_external_email", "audit_event", ["external_email"])

    op.create_table(
        "sign_invite",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column(
            "document_id",
            sa.Uuid(),
            sa.ForeignKey("document.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column(
            "created_by_id",
            sa.Integer(),
            sa.ForeignKey("user.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_sign_invite_token", "sign_invite", ["token"], unique=True)
    op.create_index("ix_sign_invite_document_id", "sign_invite", ["document_id"])


def downgrade():
    op.drop_index("ix_sign_invite_document_id", table_name="sign_invite")
    op.drop_index("ix_sign_invite_token", table_name="sign_invite")
    op.drop_table("sign_invite")

    op.drop_index("ix_audit_event_external_email", table_name="audit_event")
    op.drop_index("ix_audit_event_user_id", table_name="audit_event")
    op.drop_index("ix_audit_event_document_owner_id", table_name="audit_event")
    op.drop_index("ix_audit_event_document_timestamp", table_name="audit_event")
    op.drop_table("audit_event")

    op.drop_index("ix_signature_status", table_name="signature")
    op.drop_index("ix_signature_external_email", table_name="signature")
    op.drop_index("ix_signature_signer_id", table_name="signature")
    op.drop_index("ix_signature_document_id", table_name="signature")
    op.drop_table("signature")

    op.drop_index("ix_document_original_document_id", table_name="document")
    op.drop_index("ix_document_uploaded_by_id", table_name="document")
    op.drop_table("document")

    op.drop_table("user")

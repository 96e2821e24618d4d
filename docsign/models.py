# docsign/models.py
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone

import sqlalchemy as sa
from flask_login import UserMixin

from .extensions import db


# Naive UTC everywhere: columns are "timestamp without time zone".
def utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


SIGNATURE_STATUSES = ("pending", "signed", "rejected")
SIGNATURE_TYPES = ("text", "image", "draw")

AUDIT_ACTIONS = (
    "signature_added",
    "signature_deleted",
    "signature_status_updated",
    "document_signed",
    "document_viewed",
    "document_rejected",
    "invite_sent",
)


# =========================================================
# User
# =========================================================
class User(UserMixin, db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow_naive,
        onupdate=utcnow_naive,
    )

    __table_args__ = (
        db.UniqueConstraint("email", name="user_email_key"),
    )

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Unknown User"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"


# =========================================================
# Documents (uploaded originals + signed derivatives)
# =========================================================
class Document(db.Model):
    __tablename__ = "document"

    id = db.Column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    original_name = db.Column(db.String(255), nullable=False)

    # Relative key under the storage root (see services/document_files.py)
    storage_key = db.Column(db.String(500), nullable=False)
    file_sha256 = db.Column(db.String(64), nullable=True)

    uploaded_by_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    uploaded_by = db.relationship("User", foreign_keys=[uploaded_by_id], lazy="joined")

    upload_date = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    is_signed = db.Column(db.Boolean, nullable=False, default=False)

    # Set only on signed derivatives
    original_document_id = db.Column(
        sa.Uuid(as_uuid=True),
        db.ForeignKey("document.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    original_document = db.relationship(
        "Document",
        remote_side=[id],
        foreign_keys=[original_document_id],
        lazy="select",
    )

    signatures = db.relationship(
        "Signature",
        back_populates="document",
        lazy="select",
        cascade="all, delete-orphan",
    )

    def is_owned_by(self, user_id: int | None) -> bool:
        return user_id is not None and self.uploaded_by_id == user_id

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "originalName": self.original_name,
            "filePath": self.storage_key,
            "uploadedBy": self.uploaded_by_id,
            "uploadDate": _iso(self.upload_date),
            "isSigned": bool(self.is_signed),
            "originalDocument": str(self.original_document_id) if self.original_document_id else None,
        }

    def __repr__(self) -> str:
        return f"<Document {self.id} {self.original_name} signed={self.is_signed}>"


# =========================================================
# Signatures (one placed annotation each)
# =========================================================
class Signature(db.Model):
    __tablename__ = "signature"

    id = db.Column(sa.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    document_id = db.Column(
        sa.Uuid(as_uuid=True),
        db.ForeignKey("document.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    document = db.relationship("Document", back_populates="signatures", lazy="joined")

    # Exactly one authenticator: a registered signer or an invited e-mail
    signer_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    signer = db.relationship("User", foreign_keys=[signer_id], lazy="joined")
    external_email = db.Column(db.String(255), nullable=True, index=True)

    # Placement in UI space; display box as rendered at placement time
    page = db.Column(db.Integer, nullable=False, default=1)
    x = db.Column(db.Float, nullable=False)
    y = db.Column(db.Float, nullable=False)
    display_width = db.Column(db.Float, nullable=True)
    display_height = db.Column(db.Float, nullable=True)

    signature_type = db.Column(db.String(10), nullable=False, default="text")
    signature_value = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(10), nullable=False, default="pending", index=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    signed_at = db.Column(db.DateTime, nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    __table_args__ = (
        db.CheckConstraint(
            "status in ('pending','signed','rejected')",
            name="ck_signature_status",
        ),
        db.CheckConstraint(
            "signature_type in ('text','image','draw')",
            name="ck_signature_type",
        ),
        db.CheckConstraint(
            "signer_id IS NOT NULL OR external_email IS NOT NULL",
            name="ck_signature_authenticator",
        ),
        db.CheckConstraint("page >= 1", name="ck_signature_page"),
    )

    def is_signed_by(self, user_id: int | None) -> bool:
        return user_id is not None and self.signer_id == user_id

    def to_dict(self) -> dict:
        data = {
            "id": str(self.id),
            "documentId": str(self.document_id),
            "signer": self.signer_id,
            "externalEmail": self.external_email,
            "x": self.x,
            "y": self.y,
            "page": self.page,
            "signatureType": self.signature_type,
            "signatureValue": self.signature_value,
            "displayWidth": self.display_width,
            "displayHeight": self.display_height,
            "status": self.status,
            "rejectionReason": self.rejection_reason,
            "signedAt": _iso(self.signed_at),
            "rejectedAt": _iso(self.rejected_at),
            "createdAt": _iso(self.created_at),
        }
        if self.signer is not None:
            data["signerName"] = self.signer.display_name
        return data

    def __repr__(self) -> str:
        return f"<Signature {self.id} {self.signature_type} {self.status}>"


# =========================================================
# Audit trail (append-only)
# =========================================================
class AuditEvent(db.Model):
    __tablename__ = "audit_event"

    id = db.Column(db.Integer, primary_key=True)

    # Not a foreign key: history outlives the document
    document_id = db.Column(sa.Uuid(as_uuid=True), nullable=False)
    document_name = db.Column(db.String(255), nullable=False)
    # Uploader at write time; lets the owner read the trail after deletion
    document_owner_id = db.Column(db.Integer, nullable=True, index=True)

    action = db.Column(db.String(40), nullable=False)

    user_id = db.Column(db.Integer, nullable=True, index=True)
    external_email = db.Column(db.String(255), nullable=True, index=True)
    signer_name = db.Column(db.String(255), nullable=False)

    ip_address = db.Column(db.String(64), nullable=False, default="unknown")
    user_agent = db.Column(db.String(255), nullable=True)

    signature_type = db.Column(db.String(10), nullable=True)
    location_x = db.Column(db.Float, nullable=True)
    location_y = db.Column(db.Float, nullable=True)
    location_page = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(10), nullable=True)
    detail = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    __table_args__ = (
        db.Index("ix_audit_event_document_timestamp", "document_id", "timestamp"),
    )

    def location(self) -> dict | None:
        if self.location_x is None or self.location_y is None:
            return None
        return {"x": self.location_x, "y": self.location_y, "page": self.location_page}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "signerName": self.signer_name,
            "externalEmail": self.external_email,
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "signatureType": self.signature_type,
            "signatureLocation": self.location(),
            "status": self.status,
            "detail": self.detail,
            "timestamp": _iso(self.timestamp),
        }

    def __repr__(self) -> str:
        return f"<AuditEvent {self.id} {self.action} {self.document_id}>"


# =========================================================
# Signing invites (public signing links)
# =========================================================
class SignInvite(db.Model):
    __tablename__ = "sign_invite"

    id = db.Column(db.Integer, primary_key=True)

    token = db.Column(db.String(128), nullable=False, unique=True, index=True)

    document_id = db.Column(
        sa.Uuid(as_uuid=True),
        db.ForeignKey("document.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    document = db.relationship("Document", foreign_keys=[document_id], lazy="joined")

    email = db.Column(db.String(255), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    created_by_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    @classmethod
    def issue(cls, document: Document, email: str, *, hours: int, created_by_id: int | None) -> "SignInvite":
        return cls(
            token=secrets.token_urlsafe(32),  # ~43 chars
            document_id=document.id,
            email=email,
            expires_at=utcnow_naive() + timedelta(hours=hours),
            created_by_id=created_by_id,
        )

    def is_valid(self) -> bool:
        if not self.token or not self.expires_at:
            return False
        return utcnow_naive() <= self.expires_at

    def __repr__(self) -> str:
        return f"<SignInvite {self.id} {self.email}>"

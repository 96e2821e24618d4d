# docsign/services/lifecycle.py
"""
Signature lifecycle: placement, status transitions, document rejection,
deletion.

Every status is reachable from every other one; either the signer or the
document owner may revise a decision. Side effects (audit, archiving the
original once every signature is rejected) are published as events after
the commit.
"""
from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from docsign.config.signing import SigningConfig
from docsign.errors import NotFound, PermissionDenied, ValidationError
from docsign.extensions import db
from docsign.models import (
    SIGNATURE_STATUSES,
    SIGNATURE_TYPES,
    Document,
    Signature,
    utcnow_naive,
)

from .events import Actor, DocumentArchiveRequested, EventDispatcher, SignatureEvent

logger = logging.getLogger(__name__)

# Placeholder placement for owner-initiated whole-document rejection
REJECTION_TEXT = "REJECTED"
REJECTION_DISPLAY_BOX = (600.0, 848.0)


def parse_uuid(value: Any, what: str = "Document") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value or "").strip())
    except ValueError as exc:
        raise NotFound(f"{what} not found") from exc


def _number(payload: Mapping[str, Any], key: str, *, required: bool) -> Optional[float]:
    raw = payload.get(key)
    if raw is None or raw == "":
        if required:
            raise ValidationError(f"{key} is required")
        return None
    if isinstance(raw, bool):
        raise ValidationError(f"{key} must be a number")
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{key} must be a number") from exc
    if not math.isfinite(value):
        raise ValidationError(f"{key} must be a finite number")
    return value


def _status(raw: Any) -> str:
    status = (str(raw) if raw is not None else "").strip().lower()
    if status not in SIGNATURE_STATUSES:
        raise ValidationError("Invalid status. Must be pending, signed, or rejected")
    return status


# =========================================================
# Placement input
# =========================================================
@dataclass(frozen=True)
class Placement:
    x: float
    y: float
    page: int
    signature_type: str
    signature_value: str
    display_width: Optional[float]
    display_height: Optional[float]
    status: str = "pending"
    rejection_reason: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Placement":
        x = _number(payload, "x", required=True)
        y = _number(payload, "y", required=True)

        page_raw = _number(payload, "page", required=False)
        page = 1 if page_raw is None else int(page_raw)
        if page_raw is not None and (page != page_raw or page < 1):
            raise ValidationError("page must be an integer >= 1")

        signature_type = str(payload.get("signatureType") or "").strip().lower()
        if signature_type not in SIGNATURE_TYPES:
            raise ValidationError("signatureType must be one of text, image, draw")

        signature_value = payload.get("signatureValue")
        if not isinstance(signature_value, str) or not signature_value.strip():
            raise ValidationError("signatureValue is required")

        display_width = _number(payload, "displayWidth", required=False)
        display_height = _number(payload, "displayHeight", required=False)
        for name, value in (("displayWidth", display_width), ("displayHeight", display_height)):
            if value is not None and value < 0:
                raise ValidationError(f"{name} must not be negative")

        status = _status(payload.get("status") or "pending")
        reason = str(payload.get("rejectionReason") or "").strip() or None

        return cls(
            x=x,
            y=y,
            page=page,
            signature_type=signature_type,
            signature_value=signature_value,
            display_width=display_width or None,
            display_height=display_height or None,
            status=status,
            rejection_reason=reason,
        )


def apply_status(signature: Signature, status: str, reason: Optional[str], now: Optional[datetime] = None) -> Signature:
    """
    Sets status and keeps the timestamp/reason triple consistent with it:
    exactly one of signed_at / rejected_at for terminal states, none for pending.
    """
    reason = (reason or "").strip() or None
    if status == "rejected" and not reason:
        raise ValidationError("Rejection reason is required when status is rejected")

    now = now or utcnow_naive()
    signature.status = status

    if status == "signed":
        signature.signed_at = now
        signature.rejected_at = None
        signature.rejection_reason = None
    elif status == "rejected":
        signature.rejected_at = now
        signature.rejection_reason = reason
        signature.signed_at = None
    else:
        signature.signed_at = None
        signature.rejected_at = None
        signature.rejection_reason = None

    return signature


# =========================================================
# State machine
# =========================================================
class SignatureLifecycle:
    def __init__(self, config: SigningConfig, dispatcher: EventDispatcher, session=None):
        self.config = config
        self.dispatcher = dispatcher
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("%s failed", action)
            raise

    # -----------------------------
    # Lookups
    # -----------------------------
    def get_document(self, document_id: Any) -> Document:
        doc = self.session.get(Document, parse_uuid(document_id, "Document"))
        if not doc:
            raise NotFound("Document not found")
        return doc

    def get_signature(self, signature_id: Any) -> Signature:
        sig = self.session.get(Signature, parse_uuid(signature_id, "Signature"))
        if not sig:
            raise NotFound("Signature not found")
        return sig

    def _managed(self, signature_id: Any, actor: Actor, verb: str) -> tuple[Signature, Document]:
        """Signature + its document, provided the actor is its signer or the document owner."""
        sig = self.get_signature(signature_id)
        doc = self.session.get(Document, sig.document_id)
        if not doc:
            raise NotFound("Document not found")
        if not (sig.is_signed_by(actor.user_id) or doc.is_owned_by(actor.user_id)):
            raise PermissionDenied(f"You do not have permission to {verb} this signature")
        return sig, doc

    def document_signatures(self, document_id: Any) -> list[Signature]:
        return (
            self.session.query(Signature)
            .filter(Signature.document_id == parse_uuid(document_id))
            .order_by(Signature.created_at.asc(), Signature.id.asc())
            .all()
        )

    def owner_signatures(self, owner_id: int, status: Optional[str] = None) -> list[Signature]:
        q = (
            self.session.query(Signature)
            .join(Document, Signature.document_id == Document.id)
            .filter(Document.uploaded_by_id == owner_id)
        )
        if status is not None:
            q = q.filter(Signature.status == _status(status))
        return q.order_by(Signature.created_at.desc()).all()

    def is_fully_rejected(self, document_id: uuid.UUID) -> bool:
        statuses = [
            row[0]
            for row in self.session.query(Signature.status).filter(Signature.document_id == document_id).all()
        ]
        return bool(statuses) and all(s == "rejected" for s in statuses)

    def _archive_if_fully_rejected(self, doc: Document) -> bool:
        # Re-read after the triggering write; concurrent rejections may archive twice
        if not self.is_fully_rejected(doc.id):
            return False
        self.dispatcher.publish(
            DocumentArchiveRequested(
                document_id=doc.id,
                storage_key=doc.storage_key,
                original_name=doc.original_name,
            )
        )
        return True

    # -----------------------------
    # Operations
    # -----------------------------
    def place(self, document_id: Any, payload: Mapping[str, Any], actor: Actor) -> Signature:
        placement = Placement.from_payload(payload)
        if actor.user_id is None and not actor.external_email:
            raise ValidationError("Either signer or externalEmail is required")

        doc = self.get_document(document_id)

        sig = Signature(
            document_id=doc.id,
            signer_id=actor.user_id,
            external_email=None if actor.user_id is not None else actor.external_email,
            x=placement.x,
            y=placement.y,
            page=placement.page,
            signature_type=placement.signature_type,
            signature_value=placement.signature_value,
            display_width=placement.display_width,
            display_height=placement.display_height,
        )
        apply_status(sig, placement.status, placement.rejection_reason)

        self.session.add(sig)
        self.commit("Save signature")

        if sig.status == "rejected":
            self._archive_if_fully_rejected(doc)

        self.dispatcher.publish(
            SignatureEvent(
                action="signature_added",
                document_id=doc.id,
                actor=actor,
                signature_type=sig.signature_type,
                x=sig.x,
                y=sig.y,
                page=sig.page,
                status=sig.status,
                detail=sig.rejection_reason,
            )
        )
        return sig

    def transition(self, signature_id: Any, new_status: Any, reason: Optional[str], actor: Actor) -> Signature:
        status = _status(new_status)
        sig, doc = self._managed(signature_id, actor, "update")

        apply_status(sig, status, reason)
        self.commit("Update signature status")

        if status == "rejected":
            self._archive_if_fully_rejected(doc)

        self.dispatcher.publish(
            SignatureEvent(
                action="signature_status_updated",
                document_id=doc.id,
                actor=actor,
                signature_type=sig.signature_type,
                status=status,
                detail=sig.rejection_reason,
            )
        )
        return sig

    def reject_document(self, document_id: Any, reason: Optional[str], actor: Actor) -> Signature:
        reason = (reason or "").strip()
        if not document_id or not reason:
            raise ValidationError("Document ID and rejection reason are required")

        doc = self.get_document(document_id)
        if not doc.is_owned_by(actor.user_id):
            raise PermissionDenied("You do not have permission to reject this document")

        width, height = REJECTION_DISPLAY_BOX
        sig = Signature(
            document_id=doc.id,
            signer_id=actor.user_id,
            x=0.0,
            y=0.0,
            page=1,
            signature_type="text",
            signature_value=REJECTION_TEXT,
            display_width=width,
            display_height=height,
        )
        apply_status(sig, "rejected", reason)

        self.session.add(sig)
        self.commit("Reject document")

        self.dispatcher.publish(
            DocumentArchiveRequested(
                document_id=doc.id,
                storage_key=doc.storage_key,
                original_name=doc.original_name,
            )
        )
        self.dispatcher.publish(
            SignatureEvent(
                action="document_rejected",
                document_id=doc.id,
                actor=actor,
                status="rejected",
                detail=reason,
            )
        )
        return sig

    def delete(self, signature_id: Any, actor: Actor) -> None:
        sig, doc = self._managed(signature_id, actor, "delete")

        event = SignatureEvent(
            action="signature_deleted",
            document_id=doc.id,
            actor=actor,
            signature_type=sig.signature_type,
            x=sig.x,
            y=sig.y,
            page=sig.page,
            status=sig.status,
        )

        self.session.delete(sig)
        self.commit("Delete signature")

        self.dispatcher.publish(event)

# docsign/services/audit.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from docsign.errors import AuditWriteError, NotFound, PermissionDenied
from docsign.extensions import db
from docsign.models import AuditEvent, Document, User

from .events import Actor, SignatureEvent

logger = logging.getLogger(__name__)

UNKNOWN_DOCUMENT = "Unknown Document"
UNKNOWN_USER = "Unknown User"


class AuditRecorder:
    """
    Append-only audit writer. Names are resolved at write time so the trail
    stays readable after documents or users are renamed or deleted.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    # -----------------------------
    # Name resolution
    # -----------------------------
    def document_name(self, document_id: uuid.UUID) -> str:
        doc = self.session.get(Document, document_id)
        return doc.original_name if doc else UNKNOWN_DOCUMENT

    def document_owner(self, document_id: uuid.UUID) -> Optional[int]:
        doc = self.session.get(Document, document_id)
        return doc.uploaded_by_id if doc else None

    def signer_name(self, user_id: Optional[int], external_email: Optional[str]) -> str:
        if external_email:
            return external_email
        if user_id is not None:
            user = self.session.get(User, user_id)
            if user:
                return user.display_name
        return UNKNOWN_USER

    # -----------------------------
    # Write
    # -----------------------------
    def record(
        self,
        document_id: Optional[uuid.UUID],
        action: str,
        actor: Actor,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Optional[AuditEvent]:
        if not document_id:
            logger.info("Skipping audit log for %s - no document id", action)
            return None

        meta = dict(metadata or {})
        try:
            event = AuditEvent(
                document_id=document_id,
                document_name=self.document_name(document_id),
                document_owner_id=self.document_owner(document_id),
                action=action,
                user_id=actor.user_id,
                external_email=actor.external_email,
                signer_name=self.signer_name(actor.user_id, actor.external_email),
                ip_address=actor.ip_address or "unknown",
                user_agent=actor.user_agent,
                signature_type=meta.get("signature_type"),
                location_x=meta.get("x"),
                location_y=meta.get("y"),
                location_page=meta.get("page"),
                status=meta.get("status"),
                detail=meta.get("detail"),
            )
            self.session.add(event)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise AuditWriteError(f"Audit write failed for {action}: {exc}") from exc

        logger.info("Audit logged: %s by %s (%s) on %s", action, event.signer_name, event.ip_address, event.document_name)
        return event

    def handle(self, event: SignatureEvent) -> None:
        self.record(
            event.document_id,
            event.action,
            event.actor,
            {
                "signature_type": event.signature_type,
                "x": event.x,
                "y": event.y,
                "page": event.page,
                "status": event.status,
                "detail": event.detail,
            },
        )

    # -----------------------------
    # Read
    # -----------------------------
    def history(self, document_id: uuid.UUID) -> list[AuditEvent]:
        return (
            self.session.query(AuditEvent)
            .filter(AuditEvent.document_id == document_id)
            .order_by(AuditEvent.timestamp.desc(), AuditEvent.id.desc())
            .all()
        )

    def owner_history(self, document_id: uuid.UUID, user_id: Optional[int]) -> tuple[str, list[AuditEvent]]:
        """
        (document name, history) for the document's owner. While the document
        exists its uploader is checked; once deleted, the owner recorded on
        the events is.
        """
        doc = self.session.get(Document, document_id)
        events = self.history(document_id)

        if doc is not None:
            if not doc.is_owned_by(user_id):
                raise PermissionDenied("Access denied")
            return doc.original_name, events

        # Deleted document: unknown to anyone but its recorded owner
        owners = {e.document_owner_id for e in events if e.document_owner_id is not None}
        if user_id is None or user_id not in owners:
            raise NotFound("Document not found")
        return events[0].document_name, events

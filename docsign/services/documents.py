# docsign/services/documents.py
from __future__ import annotations

import logging
import os
from typing import Any

from docsign.errors import PermissionDenied, ValidationError
from docsign.models import Document, SignInvite

from .document_files import FileStorage, upload_storage_key
from .events import Actor, EventDispatcher, SignatureEvent
from .lifecycle import SignatureLifecycle

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


class DocumentLibrary:
    """Uploaded originals: store, list, open, delete."""

    def __init__(self, lifecycle: SignatureLifecycle, storage: FileStorage, dispatcher: EventDispatcher):
        self.lifecycle = lifecycle
        self.storage = storage
        self.dispatcher = dispatcher

    @property
    def session(self):
        return self.lifecycle.session

    def upload(self, filename: str, data: bytes, owner_id: int, mimetype: str | None = None) -> Document:
        name = os.path.basename((filename or "").strip())
        if not name:
            raise ValidationError("No file uploaded")
        if mimetype and mimetype != "application/pdf":
            raise ValidationError("Only PDF files are allowed!")
        if not data or not data.startswith(PDF_MAGIC):
            raise ValidationError("Only PDF files are allowed!")

        stored = self.storage.write_bytes(upload_storage_key(name), data)
        doc = Document(
            original_name=name,
            storage_key=stored.storage_key,
            file_sha256=stored.sha256,
            uploaded_by_id=owner_id,
        )
        self.session.add(doc)
        try:
            self.lifecycle.commit("Upload document")
        except Exception:
            self.storage.delete(stored.storage_key)
            raise
        return doc

    def list_for(self, owner_id: int) -> list[Document]:
        return (
            self.session.query(Document)
            .filter(Document.uploaded_by_id == owner_id)
            .order_by(Document.upload_date.desc())
            .all()
        )

    def open(self, document_id: Any, actor: Actor) -> tuple[Document, bytes]:
        doc = self.lifecycle.get_document(document_id)
        data = self.storage.read_bytes(doc.storage_key)
        self.dispatcher.publish(SignatureEvent(action="document_viewed", document_id=doc.id, actor=actor))
        return doc, data

    def delete(self, document_id: Any, actor: Actor) -> None:
        """Owner only. Signatures and invites go with it; the audit trail stays."""
        doc = self.lifecycle.get_document(document_id)
        if not doc.is_owned_by(actor.user_id):
            raise PermissionDenied("Access denied")

        storage_key = doc.storage_key
        self.session.query(SignInvite).filter(SignInvite.document_id == doc.id).delete(synchronize_session=False)
        self.session.delete(doc)
        self.lifecycle.commit("Delete document")

        if not self.storage.delete(storage_key):
            logger.warning("Could not delete file from storage: %s", storage_key)

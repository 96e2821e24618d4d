# docsign/services/signing.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from docsign.errors import NotFound
from docsign.models import Document

from .compositor import PdfCompositor
from .document_files import FileStorage, signed_storage_key
from .events import Actor, EventDispatcher, SignatureEvent
from .lifecycle import SignatureLifecycle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedDocument:
    document: Document
    pdf_bytes: bytes

    @property
    def filename(self) -> str:
        return self.document.original_name


class SigningService:
    """The "generate" request: render a fresh signed derivative of a document."""

    def __init__(
        self,
        lifecycle: SignatureLifecycle,
        compositor: PdfCompositor,
        storage: FileStorage,
        dispatcher: EventDispatcher,
    ):
        self.lifecycle = lifecycle
        self.compositor = compositor
        self.storage = storage
        self.dispatcher = dispatcher

    def generate(self, document_id: Any, actor: Actor) -> SignedDocument:
        source = self.lifecycle.get_document(document_id)
        if not source.storage_key or not self.storage.exists(source.storage_key):
            raise NotFound("Document file not found")

        signatures = self.lifecycle.document_signatures(source.id)

        # Read once, build once, write once
        source_bytes = self.storage.read_bytes(source.storage_key)
        pdf_bytes = self.compositor.render(source_bytes, signatures)

        stored = self.storage.write_bytes(signed_storage_key(source.original_name), pdf_bytes)

        derived = Document(
            original_name=stored.storage_key,
            storage_key=stored.storage_key,
            file_sha256=stored.sha256,
            uploaded_by_id=actor.user_id,
            is_signed=True,
            original_document_id=source.id,
        )
        session = self.lifecycle.session
        session.add(derived)
        try:
            self.lifecycle.commit("Save signed document")
        except Exception:
            # Keep storage in step with the database
            self.storage.delete(stored.storage_key)
            raise

        logger.info("Signed derivative %s written for document %s", stored.storage_key, source.id)

        self.dispatcher.publish(
            SignatureEvent(action="document_signed", document_id=source.id, actor=actor)
        )
        return SignedDocument(document=derived, pdf_bytes=pdf_bytes)

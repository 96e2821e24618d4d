# docsign/services/archive.py
from __future__ import annotations

import logging

from docsign.config.signing import SigningConfig
from docsign.errors import ArchiveError, ValidationError

from .document_files import FileStorage
from .events import DocumentArchiveRequested

logger = logging.getLogger(__name__)


class RejectedArchiver:
    """Copies a fully rejected document into the storage's rejected area."""

    def __init__(self, storage: FileStorage, config: SigningConfig):
        self.storage = storage
        self.config = config

    def archive_name(self, original_name: str) -> str:
        return f"{self.config.rejected_prefix}{original_name}"

    def handle(self, event: DocumentArchiveRequested) -> None:
        try:
            dest = self.storage.copy_to_archive(event.storage_key, self.archive_name(event.original_name))
        except (OSError, ValidationError) as exc:
            raise ArchiveError(f"Could not archive rejected document {event.document_id}: {exc}") from exc
        logger.info("Document %s copied to rejected area: %s", event.document_id, dest)

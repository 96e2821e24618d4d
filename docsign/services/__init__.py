# docsign/services/__init__.py
from __future__ import annotations

import os
from dataclasses import dataclass

from flask import Flask, current_app

from docsign.config.signing import SigningConfig

from .archive import RejectedArchiver
from .audit import AuditRecorder
from .compositor import PdfCompositor
from .document_files import FileStorage
from .documents import DocumentLibrary
from .events import DocumentArchiveRequested, EventDispatcher, SignatureEvent
from .invites import InviteService
from .lifecycle import SignatureLifecycle
from .signing import SigningService

EXTENSION_KEY = "docsign"


@dataclass
class SigningServices:
    config: SigningConfig
    storage: FileStorage
    dispatcher: EventDispatcher
    audit: AuditRecorder
    archiver: RejectedArchiver
    lifecycle: SignatureLifecycle
    compositor: PdfCompositor
    signing: SigningService
    documents: DocumentLibrary
    invites: InviteService


def _upload_dir(app: Flask) -> str:
    return (app.config.get("UPLOAD_DIR") or "").strip() or os.path.join(app.instance_path, "uploads")


def build_services(app: Flask) -> SigningServices:
    """Wire the signing core from app.config. Called once by create_app()."""
    config = SigningConfig.from_mapping(app.config)
    storage = FileStorage(_upload_dir(app))
    dispatcher = EventDispatcher(attempts=config.handler_attempts)

    audit = AuditRecorder()
    archiver = RejectedArchiver(storage, config)
    dispatcher.subscribe(SignatureEvent, audit.handle)
    dispatcher.subscribe(DocumentArchiveRequested, archiver.handle)

    lifecycle = SignatureLifecycle(config, dispatcher)
    compositor = PdfCompositor(config)

    return SigningServices(
        config=config,
        storage=storage,
        dispatcher=dispatcher,
        audit=audit,
        archiver=archiver,
        lifecycle=lifecycle,
        compositor=compositor,
        signing=SigningService(lifecycle, compositor, storage, dispatcher),
        documents=DocumentLibrary(lifecycle, storage, dispatcher),
        invites=InviteService(
            lifecycle,
            dispatcher,
            public_base_url=app.config.get("PUBLIC_BASE_URL", ""),
            hours_valid=int(app.config.get("SIGN_INVITE_HOURS", 24 * 7)),
        ),
    )


def current_services() -> SigningServices:
    return current_app.extensions[EXTENSION_KEY]

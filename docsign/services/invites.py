# docsign/services/invites.py
from __future__ import annotations

import logging
from typing import Any, Mapping

from docsign.errors import LinkExpired, NotFound, ValidationError
from docsign.models import SignInvite, Signature

from .events import Actor, EventDispatcher, SignatureEvent
from .lifecycle import SignatureLifecycle

logger = logging.getLogger(__name__)


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def looks_like_email(email: str) -> bool:
    return "@" in email and "." in email.split("@")[-1]


class InviteService:
    """
    Signing links for people without an account. Delivery is out of scope:
    the link is logged and handed back to the inviter.
    """

    def __init__(
        self,
        lifecycle: SignatureLifecycle,
        dispatcher: EventDispatcher,
        *,
        public_base_url: str,
        hours_valid: int,
    ):
        self.lifecycle = lifecycle
        self.dispatcher = dispatcher
        self.public_base_url = (public_base_url or "").rstrip("/")
        self.hours_valid = hours_valid

    @property
    def session(self):
        return self.lifecycle.session

    def link_for(self, invite: SignInvite) -> str:
        return f"{self.public_base_url}/sign/{invite.token}"

    def invite(self, document_id: Any, email: str | None, actor: Actor) -> tuple[SignInvite, str]:
        email = normalize_email(email)
        if not document_id or not email:
            raise ValidationError("documentId and email are required")
        if not looks_like_email(email):
            raise ValidationError("Please enter a valid email address.")

        doc = self.lifecycle.get_document(document_id)

        invite = SignInvite.issue(doc, email, hours=self.hours_valid, created_by_id=actor.user_id)
        self.session.add(invite)
        self.lifecycle.commit("Create signing invite")

        link = self.link_for(invite)
        logger.info("Public signature link for %s: %s", email, link)

        self.dispatcher.publish(
            SignatureEvent(action="invite_sent", document_id=doc.id, actor=actor, detail=email)
        )
        return invite, link

    def resolve(self, token: str | None) -> SignInvite:
        token = (token or "").strip()
        if not token:
            raise NotFound("Invalid or expired link")

        invite = self.session.query(SignInvite).filter(SignInvite.token == token).first()
        if not invite or not invite.document:
            raise NotFound("Invalid or expired link")
        if not invite.is_valid():
            raise LinkExpired()
        return invite

    def sign(self, token: str | None, payload: Mapping[str, Any], actor: Actor) -> Signature:
        invite = self.resolve(token)
        external = Actor(
            external_email=invite.email,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
        )
        # Public placements always start pending
        placement = {k: v for k, v in payload.items() if k not in ("status", "rejectionReason")}
        return self.lifecycle.place(invite.document_id, placement, external)

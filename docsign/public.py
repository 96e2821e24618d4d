# docsign/public.py
from __future__ import annotations

from flask import Blueprint, jsonify

from .extensions import limiter
from .services import current_services
from .utils.request_meta import anonymous_actor, json_body


public = Blueprint("public", __name__, url_prefix="/api/public")


# =========================================================
# Public signing (invited e-mail, no account)
# =========================================================
@public.route("/sign/<token>", methods=["GET"])
def signing_info(token: str):
    invite = current_services().invites.resolve(token)
    return jsonify(
        {
            "documentId": str(invite.document_id),
            "email": invite.email,
            "document": invite.document.to_dict(),
            "expiresAt": invite.expires_at.isoformat(),
        }
    )


@public.route("/sign/<token>", methods=["POST"])
@limiter.limit("30 per hour")
def sign_document(token: str):
    sig = current_services().invites.sign(token, json_body(), anonymous_actor())
    return jsonify({"msg": "Signature saved successfully", "signature": sig.to_dict()})

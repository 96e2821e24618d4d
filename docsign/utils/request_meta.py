# docsign/utils/request_meta.py
from __future__ import annotations

from flask import request
from flask_login import current_user

from docsign.services.events import Actor


# =========================================================
# Client metadata helpers
# =========================================================
def client_ip() -> str:
    """
    Prefer X-Forwarded-For if present (when behind proxy/LB).
    """
    xff = (request.headers.get("X-Forwarded-For") or "").strip()
    if xff:
        return xff.split(",")[0].strip() or "unknown"
    return (request.remote_addr or "").strip() or "unknown"


def safe_user_agent(maxlen: int = 255) -> str | None:
    ua = (request.headers.get("User-Agent") or "").strip()
    return ua[:maxlen] if ua else None


def current_actor() -> Actor:
    """The logged-in user plus request metadata, as seen by the audit trail."""
    user_id = current_user.id if getattr(current_user, "is_authenticated", False) else None
    return Actor(user_id=user_id, ip_address=client_ip(), user_agent=safe_user_agent())


def anonymous_actor() -> Actor:
    return Actor(ip_address=client_ip(), user_agent=safe_user_agent())


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}

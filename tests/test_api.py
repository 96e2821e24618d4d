"""
End-to-end HTTP tests through the Flask test client.
"""
import os
from datetime import timedelta
from io import BytesIO

import pytest
from pypdf import PdfReader

from docsign.errors import AuditWriteError
from docsign.extensions import db
from docsign.models import Document, SignInvite, utcnow_naive
from docsign.services import EXTENSION_KEY, current_services

from conftest import PASSWORD, login, make_pdf, placement


def register(client, name, email, password=PASSWORD):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})


@pytest.fixture
def owner_client(app):
    client = app.test_client()
    assert register(client, "Olive Owner", "owner@example.com").status_code == 201
    return client


@pytest.fixture
def signer_client(app):
    client = app.test_client()
    assert register(client, "Sam Signer", "signer@example.com").status_code == 201
    return client


def upload(client, data=None, name="contract.pdf", mimetype="application/pdf"):
    return client.post(
        "/api/docs/upload",
        data={"pdf": (BytesIO(data if data is not None else make_pdf()), name, mimetype)},
        content_type="multipart/form-data",
    )


@pytest.fixture
def doc_id(owner_client):
    res = upload(owner_client)
    assert res.status_code == 201
    return res.get_json()["document"]["id"]


# =============================================================================
# AUTH / HEALTH
# =============================================================================

def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.get_json()["status"] == "OK"


def test_register_then_me(client):
    res = client.post(
        "/api/auth/register",
        json={"name": "New Person", "email": "New@Example.com", "password": PASSWORD},
    )
    assert res.status_code == 201
    assert client.get("/api/auth/me").get_json()["user"]["email"] == "new@example.com"


def test_register_duplicate(client, owner_client):
    res = register(client, "Again", "OWNER@example.com")
    assert res.status_code == 400
    assert res.get_json()["msg"] == "User already exists"


def test_register_weak_password(client):
    res = client.post("/api/auth/register", json={"name": "W", "email": "w@example.com", "password": "short"})
    assert res.status_code == 400


def test_login(client, owner_client):
    assert login(client, "owner@example.com").status_code == 200
    assert client.get("/api/auth/me").get_json()["user"]["name"] == "Olive Owner"


def test_bad_login(client, owner_client):
    res = login(client, "owner@example.com", "WrongPassword1")
    assert res.status_code == 400
    assert res.get_json()["msg"] == "Invalid credentials"


def test_endpoints_need_session(client):
    res = client.get("/api/docs")
    assert res.status_code == 401
    assert res.get_json()["msg"] == "No session, authorization denied"


def test_unknown_route(client):
    assert client.get("/api/nope").get_json() == {"message": "Route not found"}


# =============================================================================
# DOCUMENTS
# =============================================================================

def test_upload_list_view(owner_client, doc_id):
    docs = owner_client.get("/api/docs").get_json()
    assert [d["id"] for d in docs] == [doc_id]
    assert docs[0]["originalName"] == "contract.pdf"
    assert docs[0]["isSigned"] is False

    res = owner_client.get(f"/api/docs/{doc_id}/file")
    assert res.status_code == 200
    assert res.mimetype == "application/pdf"
    assert res.data.startswith(b"%PDF-")


def test_upload_rejects_non_pdf(owner_client):
    res = upload(owner_client, data=b"hello", name="notes.txt", mimetype="text/plain")
    assert res.status_code == 400
    assert res.get_json()["msg"] == "Only PDF files are allowed!"


def test_upload_without_file(owner_client):
    res = owner_client.post("/api/docs/upload", data={}, content_type="multipart/form-data")
    assert res.status_code == 400


def test_delete_document_owner_only(owner_client, signer_client, doc_id):
    assert signer_client.delete(f"/api/docs/{doc_id}").status_code == 403

    assert owner_client.delete(f"/api/docs/{doc_id}").status_code == 200
    assert owner_client.get("/api/docs").get_json() == []
    assert owner_client.get(f"/api/docs/{doc_id}/file").status_code == 404


# =============================================================================
# SIGNATURES
# =============================================================================

def test_place_and_list(owner_client, signer_client, doc_id):
    res = signer_client.post("/api/signatures", json={"documentId": doc_id, **placement()})
    assert res.status_code == 200
    assert res.get_json()["msg"] == "Signature saved successfully"
    sig = res.get_json()["signature"]
    assert sig["status"] == "pending"
    assert sig["signerName"] == "Sam Signer"

    listed = signer_client.get(f"/api/signatures/document/{doc_id}").get_json()
    assert [s["id"] for s in listed] == [sig["id"]]

    # Owner-scoped listings include signatures on the owner's documents
    mine = owner_client.get("/api/signatures").get_json()
    assert mine[0]["documentName"] == "contract.pdf"
    assert owner_client.get("/api/signatures/status/pending").get_json()[0]["id"] == sig["id"]
    assert owner_client.get("/api/signatures/status/signed").get_json() == []


def test_place_validation_error(signer_client, doc_id):
    res = signer_client.post("/api/signatures", json={"documentId": doc_id, **placement(page=0)})
    assert res.status_code == 400


def test_place_on_unknown_document(signer_client):
    res = signer_client.post(
        "/api/signatures",
        json={"documentId": "00000000-0000-0000-0000-000000000000", **placement()},
    )
    assert res.status_code == 404


def test_status_update_and_bad_status(signer_client, doc_id):
    sig_id = signer_client.post("/api/signatures", json={"documentId": doc_id, **placement()}).get_json()["signature"]["id"]

    res = signer_client.put(f"/api/signatures/{sig_id}/status", json={"status": "signed"})
    assert res.status_code == 200
    assert res.get_json()["signature"]["signedAt"]

    res = signer_client.put(f"/api/signatures/{sig_id}/status", json={"status": "rejected"})
    assert res.status_code == 400

    res = signer_client.put(f"/api/signatures/{sig_id}/status", json={"status": "maybe"})
    assert res.status_code == 400
    assert res.get_json()["msg"] == "Invalid status. Must be pending, signed, or rejected"

    assert signer_client.get("/api/signatures/status/maybe").status_code == 400


def test_status_update_by_stranger(app, signer_client, doc_id):
    sig_id = signer_client.post("/api/signatures", json={"documentId": doc_id, **placement()}).get_json()["signature"]["id"]

    stranger = app.test_client()
    register(stranger, "Stranger", "stranger@example.com")
    res = stranger.put(f"/api/signatures/{sig_id}/status", json={"status": "signed"})
    assert res.status_code == 403


def test_delete_signature_keeps_document_flag(owner_client, signer_client, doc_id):
    sig_id = signer_client.post("/api/signatures", json={"documentId": doc_id, **placement()}).get_json()["signature"]["id"]

    assert signer_client.delete(f"/api/signatures/{sig_id}").status_code == 200
    assert signer_client.get(f"/api/signatures/document/{doc_id}").get_json() == []
    assert owner_client.get("/api/docs").get_json()[0]["isSigned"] is False


def test_reject_document(app, owner_client, signer_client, doc_id):
    assert signer_client.post(
        "/api/signatures/reject-document",
        json={"documentId": doc_id, "rejectionReason": "no"},
    ).status_code == 403

    res = owner_client.post("/api/signatures/reject-document", json={"documentId": doc_id})
    assert res.status_code == 400

    res = owner_client.post(
        "/api/signatures/reject-document",
        json={"documentId": doc_id, "rejectionReason": "Contract withdrawn"},
    )
    assert res.status_code == 200
    assert res.get_json()["signature"]["signatureValue"] == "REJECTED"
    with app.app_context():
        assert os.path.exists(current_services().storage.archive_path("rejected_contract.pdf"))


# =============================================================================
# GENERATE
# =============================================================================

def test_generate_signed_pdf(app, owner_client, signer_client, doc_id):
    signer_client.post("/api/signatures", json={"documentId": doc_id, **placement(signatureValue="Sam Signer")})

    res = signer_client.get(f"/api/signatures/generate/{doc_id}")
    assert res.status_code == 200
    assert res.mimetype == "application/pdf"
    assert "attachment" in res.headers["Content-Disposition"]
    assert "_signed_" in res.headers["Content-Disposition"]
    assert res.headers["Cache-Control"] == "no-cache"
    assert "Sam Signer" in (PdfReader(BytesIO(res.data)).pages[0].extract_text() or "")

    # Original untouched, derivative recorded
    with app.app_context():
        derived = Document.query.filter_by(is_signed=True).one()
        assert str(derived.original_document_id) == doc_id
    original = owner_client.get("/api/docs").get_json()
    assert [d["isSigned"] for d in original if d["id"] == doc_id] == [False]


def test_generate_all_rejected(owner_client, doc_id):
    owner_client.post(
        "/api/signatures/reject-document",
        json={"documentId": doc_id, "rejectionReason": "Withdrawn"},
    )
    res = owner_client.get(f"/api/signatures/generate/{doc_id}")
    assert res.status_code == 400
    assert res.get_json()["msg"] == "No valid signatures found for this document"


def test_generate_unknown_document(owner_client):
    res = owner_client.get("/api/signatures/generate/00000000-0000-0000-0000-000000000000")
    assert res.status_code == 404


# =============================================================================
# INVITES / PUBLIC SIGNING
# =============================================================================

def _invite(owner_client, doc_id, email="guest@example.com"):
    res = owner_client.post("/api/signatures/invite", json={"documentId": doc_id, "email": email})
    assert res.status_code == 200
    link = res.get_json()["publicLink"]
    assert link.startswith("http://sign.test/sign/")
    return link.rsplit("/", 1)[1]


def test_public_signing_flow(client, owner_client, doc_id):
    token = _invite(owner_client, doc_id)

    info = client.get(f"/api/public/sign/{token}").get_json()
    assert info["documentId"] == doc_id
    assert info["email"] == "guest@example.com"

    res = client.post(
        f"/api/public/sign/{token}",
        json={**placement(signatureValue="Guest"), "status": "signed"},
    )
    assert res.status_code == 200
    sig = res.get_json()["signature"]
    assert sig["externalEmail"] == "guest@example.com"
    assert sig["signer"] is None
    assert sig["status"] == "pending"


def test_public_link_expired(app, client, owner_client, doc_id):
    token = _invite(owner_client, doc_id)
    with app.app_context():
        invite = SignInvite.query.filter_by(token=token).one()
        invite.expires_at = utcnow_naive() - timedelta(minutes=1)
        db.session.commit()

    assert client.get(f"/api/public/sign/{token}").status_code == 410


def test_public_link_unknown(client):
    assert client.get("/api/public/sign/does-not-exist").status_code == 404


def test_invite_validation(owner_client, doc_id):
    res = owner_client.post("/api/signatures/invite", json={"documentId": doc_id, "email": "not-an-email"})
    assert res.status_code == 400


# =============================================================================
# AUDIT
# =============================================================================

def test_audit_trail(owner_client, signer_client, doc_id):
    sig_id = signer_client.post("/api/signatures", json={"documentId": doc_id, **placement()}).get_json()["signature"]["id"]
    signer_client.put(f"/api/signatures/{sig_id}/status", json={"status": "signed"})
    owner_client.get(f"/api/docs/{doc_id}/file")

    res = owner_client.get(f"/api/audit/{doc_id}")
    assert res.status_code == 200
    body = res.get_json()
    assert body["documentName"] == "contract.pdf"
    assert body["totalEvents"] == 3
    actions = {e["action"] for e in body["auditLogs"]}
    assert actions == {"signature_added", "signature_status_updated", "document_viewed"}
    added = next(e for e in body["auditLogs"] if e["action"] == "signature_added")
    assert added["signerName"] == "Sam Signer"
    assert added["signatureLocation"] == {"x": 100.0, "y": 40.0, "page": 1}


def test_audit_is_owner_only(signer_client, doc_id):
    assert signer_client.get(f"/api/audit/{doc_id}").status_code == 403


def test_audit_trail_readable_by_owner_after_delete(owner_client, signer_client, doc_id):
    signer_client.post("/api/signatures", json={"documentId": doc_id, **placement()})
    assert owner_client.delete(f"/api/docs/{doc_id}").status_code == 200

    res = owner_client.get(f"/api/audit/{doc_id}")
    assert res.status_code == 200
    body = res.get_json()
    assert body["documentId"] == doc_id
    assert body["documentName"] == "contract.pdf"
    assert "signature_added" in {e["action"] for e in body["auditLogs"]}

    # Nobody else learns the document ever existed
    assert signer_client.get(f"/api/audit/{doc_id}").status_code == 404


def test_broken_audit_store_does_not_fail_the_request(app, signer_client, doc_id, monkeypatch):
    services = app.extensions[EXTENSION_KEY]

    def unavailable(*args, **kwargs):
        raise AuditWriteError("audit store down")

    monkeypatch.setattr(services.audit, "record", unavailable)

    res = signer_client.post("/api/signatures", json={"documentId": doc_id, **placement()})
    assert res.status_code == 200
    assert res.get_json()["signature"]["status"] == "pending"
    assert any("audit store down" in f.error for f in services.dispatcher.failures)

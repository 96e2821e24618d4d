# docsign/routes.py
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, make_response, request
from flask_login import current_user, login_required

from .errors import ValidationError
from .services import current_services
from .utils.request_meta import current_actor, json_body

main = Blueprint("main", __name__, url_prefix="/api")


def _pdf_response(pdf_bytes: bytes, filename: str, disposition: str = "attachment"):
    resp = make_response(pdf_bytes)
    resp.headers["Content-Type"] = "application/pdf"
    resp.headers["Content-Disposition"] = f'{disposition}; filename="{filename}"'
    resp.headers["Content-Length"] = str(len(pdf_bytes))
    resp.headers["Cache-Control"] = "no-cache"
    return resp


def _signature_row(sig) -> dict:
    data = sig.to_dict()
    data["documentName"] = sig.document.original_name if sig.document else None
    return data


# =========================================================
# Documents
# =========================================================
@main.route("/docs/upload", methods=["POST"])
@login_required
def upload_document():
    upload = request.files.get("pdf")
    if upload is None or not upload.filename:
        raise ValidationError("No file uploaded")

    doc = current_services().documents.upload(
        upload.filename,
        upload.read(),
        owner_id=current_user.id,
        mimetype=upload.mimetype,
    )
    current_app.logger.info("Document %s uploaded by user %s", doc.id, current_user.id)
    return jsonify({"msg": "File uploaded successfully", "document": doc.to_dict()}), 201


@main.route("/docs", methods=["GET"])
@login_required
def list_documents():
    docs = current_services().documents.list_for(current_user.id)
    return jsonify([d.to_dict() for d in docs])


@main.route("/docs/<uuid:document_id>/file", methods=["GET"])
@login_required
def view_document(document_id):
    doc, data = current_services().documents.open(document_id, current_actor())
    return _pdf_response(data, doc.original_name, disposition="inline")


@main.route("/docs/<uuid:document_id>", methods=["DELETE"])
@login_required
def delete_document(document_id):
    current_services().documents.delete(document_id, current_actor())
    return jsonify({"msg": "Document deleted successfully"})


# =========================================================
# Signatures
# =========================================================
@main.route("/signatures", methods=["POST"])
@login_required
def save_signature_position():
    data = json_body()
    sig = current_services().lifecycle.place(data.get("documentId"), data, current_actor())
    return jsonify({"msg": "Signature saved successfully", "signature": sig.to_dict()})


@main.route("/signatures", methods=["GET"])
@login_required
def list_all_signatures():
    sigs = current_services().lifecycle.owner_signatures(current_user.id)
    return jsonify([_signature_row(s) for s in sigs])


@main.route("/signatures/document/<uuid:document_id>", methods=["GET"])
@login_required
def document_signatures(document_id):
    sigs = current_services().lifecycle.document_signatures(document_id)
    return jsonify([s.to_dict() for s in sigs])


@main.route("/signatures/status/<status>", methods=["GET"])
@login_required
def signatures_by_status(status):
    sigs = current_services().lifecycle.owner_signatures(current_user.id, status=status)
    return jsonify([_signature_row(s) for s in sigs])


@main.route("/signatures/<uuid:signature_id>/status", methods=["PUT"])
@login_required
def update_signature_status(signature_id):
    data = json_body()
    sig = current_services().lifecycle.transition(
        signature_id,
        data.get("status"),
        data.get("rejectionReason"),
        current_actor(),
    )
    return jsonify({"msg": "Signature status updated successfully", "signature": sig.to_dict()})


@main.route("/signatures/<uuid:signature_id>", methods=["DELETE"])
@login_required
def delete_signature(signature_id):
    current_services().lifecycle.delete(signature_id, current_actor())
    return jsonify({"msg": "Signature deleted successfully"})


@main.route("/signatures/reject-document", methods=["POST"])
@login_required
def reject_document():
    data = json_body()
    sig = current_services().lifecycle.reject_document(
        data.get("documentId"),
        data.get("rejectionReason"),
        current_actor(),
    )
    return jsonify({"msg": "Document rejected successfully", "signature": sig.to_dict()})


@main.route("/signatures/generate/<uuid:document_id>", methods=["GET"])
@login_required
def generate_signed_pdf(document_id):
    signed = current_services().signing.generate(document_id, current_actor())
    return _pdf_response(signed.pdf_bytes, signed.filename)


@main.route("/signatures/invite", methods=["POST"])
@login_required
def invite_signer():
    data = json_body()
    invite, link = current_services().invites.invite(data.get("documentId"), data.get("email"), current_actor())
    return jsonify(
        {
            "msg": "Invite sent",
            "publicLink": link,
            "expiresAt": invite.expires_at.isoformat(),
        }
    )


# =========================================================
# Audit trail
# =========================================================
@main.route("/audit/<uuid:document_id>", methods=["GET"])
@login_required
def document_audit(document_id):
    name, events = current_services().audit.owner_history(document_id, getattr(current_user, "id", None))
    return jsonify(
        {
            "documentId": str(document_id),
            "documentName": name,
            "totalEvents": len(events),
            "auditLogs": [e.to_dict() for e in events],
        }
    )

"""
Shared fixtures: app on in-memory SQLite with a temp storage root,
seeded users and documents, PDF and image payloads built on the fly.
"""
import base64
from io import BytesIO

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docsign import create_app
from docsign.extensions import db
from docsign.models import Document, User
from docsign.services import current_services
from docsign.services.events import Actor
from docsign.settings import TestConfig
from docsign.utils.passwords import hash_password

PASSWORD = "Secret1234X"


# =============================================================================
# PAYLOADS
# =============================================================================

def make_pdf(pages=1, pagesize=letter):
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=pagesize)
    for n in range(pages):
        c.drawString(72, 720, f"Page {n + 1}")
        c.showPage()
    c.save()
    return buf.getvalue()


def image_bytes(fmt="PNG", size=(80, 40)):
    mode = "RGBA" if fmt == "PNG" else "RGB"
    img = Image.new(mode, size, (20, 40, 200, 255) if mode == "RGBA" else (20, 40, 200))
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def data_url(fmt="PNG", size=(80, 40)):
    media = "image/png" if fmt == "PNG" else "image/jpeg"
    return f"data:{media};base64," + base64.b64encode(image_bytes(fmt, size)).decode()


@pytest.fixture
def pdf_bytes():
    return make_pdf()


@pytest.fixture
def png_data_url():
    return data_url("PNG")


@pytest.fixture
def jpeg_data_url():
    return data_url("JPEG")


# =============================================================================
# APP
# =============================================================================

@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        UPLOAD_DIR = str(tmp_path / "uploads")
        PUBLIC_BASE_URL = "http://sign.test"

    app = create_app(_Config)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """
    App context for service-level tests. HTTP tests must not hold one:
    requests would reuse it and share `g` (and the logged-in user).
    """
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(ctx):
    return current_services()


def _user(name, email):
    user = User(name=name, email=email, password_hash=hash_password(PASSWORD))
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def owner(ctx):
    return _user("Olive Owner", "owner@example.com")


@pytest.fixture
def signer(ctx):
    return _user("Sam Signer", "signer@example.com")


@pytest.fixture
def owner_actor(owner):
    return Actor(user_id=owner.id, ip_address="10.0.0.1", user_agent="pytest")


@pytest.fixture
def signer_actor(signer):
    return Actor(user_id=signer.id, ip_address="10.0.0.2", user_agent="pytest")


@pytest.fixture
def document(services, owner, pdf_bytes) -> Document:
    return services.documents.upload("contract.pdf", pdf_bytes, owner_id=owner.id)


def placement(**overrides):
    payload = {
        "x": 100,
        "y": 40,
        "page": 1,
        "signatureType": "text",
        "signatureValue": "Sam Signer",
        "displayWidth": 600,
        "displayHeight": 776,
    }
    payload.update(overrides)
    return payload


def login(client, email, password=PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})

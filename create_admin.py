"""Seed (or reset the password of) a DocSign user.

Usage:
    DOCSIGN_ADMIN_EMAIL=owner@example.com DOCSIGN_ADMIN_PASSWORD=... python create_admin.py
    python create_admin.py owner@example.com 'Passw0rdLong' "Owner Name"
"""
import os
import sys

from docsign import create_app
from docsign.extensions import db
from docsign.models import User
from docsign.utils.passwords import hash_password, password_problem


def main(argv):
    email = (argv[1] if len(argv) > 1 else os.getenv("DOCSIGN_ADMIN_EMAIL", "")).strip().lower()
    password = argv[2] if len(argv) > 2 else os.getenv("DOCSIGN_ADMIN_PASSWORD", "")
    name = argv[3] if len(argv) > 3 else os.getenv("DOCSIGN_ADMIN_NAME", "DocSign Admin")

    if not email or not password:
        print("Email and password are required (argv or DOCSIGN_ADMIN_EMAIL / DOCSIGN_ADMIN_PASSWORD).")
        return 1

    problem = password_problem(password)
    if problem:
        print(problem)
        return 1

    app = create_app()
    with app.app_context():
        user = User.query.filter_by(email=email).first()
        if user:
            print("Resetting password for existing user...")
            user.password_hash = hash_password(password)
        else:
            print("Creating user...")
            user = User(name=name, email=email, password_hash=hash_password(password))
            db.session.add(user)
        db.session.commit()

    print("User ready:", email)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))

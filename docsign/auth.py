# docsign/auth.py
from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy.exc import IntegrityError

from .errors import ValidationError
from .extensions import db, limiter
from .models import User
from .services.invites import looks_like_email, normalize_email
from .utils.passwords import hash_password, password_problem, verify_password
from .utils.request_meta import json_body

auth = Blueprint("auth", __name__, url_prefix="/api/auth")


# =========================================================
# Register
# =========================================================
@auth.route("/register", methods=["POST"])
@limiter.limit("10 per hour")
def register():
    data = json_body()
    name = (data.get("name") or "").strip()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""

    if not name or not email or not password:
        raise ValidationError("Name, email and password are required.")
    if not looks_like_email(email):
        raise ValidationError("Please enter a valid email address.")

    problem = password_problem(password)
    if problem:
        raise ValidationError(problem)

    user = User(name=name, email=email, password_hash=hash_password(password))
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"msg": "User already exists"}), 400

    login_user(user)
    current_app.logger.info("Registered user %s", user.email)
    return jsonify({"msg": "User registered successfully", "user": user.to_dict()}), 201


# =========================================================
# Login / Logout
# =========================================================
@auth.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    data = json_body()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""

    if not email or not password:
        raise ValidationError("Email and password are required.")

    user = User.query.filter(db.func.lower(User.email) == email).first()
    if not user or not verify_password(user.password_hash, password):
        return jsonify({"msg": "Invalid credentials"}), 400

    login_user(user, remember=bool(data.get("remember")))
    return jsonify({"msg": "Logged in", "user": user.to_dict()})


@auth.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"msg": "You have been logged out."})


@auth.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})

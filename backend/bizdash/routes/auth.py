# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/bizdash/routes/auth.py
"""
Authentication API routes

- POST /api/register: self-registration, returns a bearer token
- POST /api/login: email + password, returns a bearer token
- GET /api/profile: the caller's own account

Logout has no endpoint: tokens are stateless and the client discards them.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..extensions import db
from ..services import auth_service, token_service
from ..services.auth_service import AuthFailure
from ..validation import DuplicateError, ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.post("/register")
def register_route():
    """
    Register a new account and sign the caller in.

    Returns 200 {message, token, user}; 400 on missing fields or a taken email.
    """
    data = request.get_json(silent=True) or {}

    try:
        user = auth_service.register(
            data.get("name"),
            data.get("email"),
            data.get("password"),
            session=db.session,
        )
    except ValidationError as e:
        return jsonify({"error": str(e), "fields": e.fields}), 400
    except DuplicateError as e:
        return jsonify({"error": str(e)}), 400

    token = token_service.issue(user.id, user.email)
    return jsonify({
        "message": "User registered successfully",
        "token": token,
        "user": user.to_summary(),
    }), 200


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by email and password.

    Unknown email and wrong password get the same 401 body.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    try:
        user = auth_service.verify_credentials(email, password, session=db.session)
    except AuthFailure as e:
        current_app.logger.info("Failed login from %s", request.remote_addr)
        return jsonify({"error": str(e)}), 401

    token = token_service.issue(user.id, user.email)
    current_app.logger.info("User id=%s logged in", user.id)
    return jsonify({
        "message": "Login successful",
        "token": token,
        "user": user.to_summary(),
    }), 200


@auth_bp.get("/profile")
@require_auth
def profile_route():
    user = auth_service.get_user(g.current_user_id, session=db.session)
    if user is None:
        return jsonify({"error": "User not found"}), 404
    return jsonify(user.to_dict()), 200

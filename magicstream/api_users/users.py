from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required

from ..models import UserLogin, UserRegistration, parse_body
from ..services import get_blocklist, get_store
from .auth import issue_tokens
from .users_functions import authenticate, create_user, serialize_user

users_bp = Blueprint("users", __name__)


@users_bp.route("/register", methods=["POST"])
def register_user():
    """
    Handle POST requests that create user accounts.

    Returns:
        Response: Created user (no password, no token) and status 201.
    """
    registration = parse_body(UserRegistration, request.get_json(silent=True))
    user = create_user(get_store(), registration)
    return jsonify(user), 201


@users_bp.route("/login", methods=["POST"])
def login_user():
    """
    Handle POST requests for user authentication.

    Returns:
        Response: User profile with an access token and a refresh token.
    """
    credentials = parse_body(UserLogin, request.get_json(silent=True))
    user = authenticate(get_store(), credentials.email, credentials.password)
    tokens = issue_tokens(user["user_id"], user.get("email"), user.get("role"))
    current_app.logger.info("User %s logged in", user["user_id"])
    return jsonify({**serialize_user(user), **tokens})


@users_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout_user():
    claims = get_jwt()
    blocklist = get_blocklist()
    blocklist.revoke(claims["jti"], claims.get("exp"))
    if claims.get("refresh_jti"):
        blocklist.revoke(claims["refresh_jti"], None)
    return jsonify({"message": "Logged out successfully"})


@users_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh_token():
    """
    Exchange a refresh token (sent as the bearer token) for a new pair.

    Returns:
        Response: New ``token`` and ``refresh_token``; the old refresh token is revoked.
    """
    claims = get_jwt()
    get_blocklist().revoke(claims["jti"], claims.get("exp"))
    tokens = issue_tokens(get_jwt_identity(), claims.get("email"), claims.get("role"))
    return jsonify(tokens)

from flask import jsonify
from flask_jwt_extended import JWTManager, create_access_token, create_refresh_token, decode_token

from ..services import get_blocklist

jwt = JWTManager()


def init_jwt(app):
    """
    Attach JWT handling to the app with ``{"error": ...}`` 401 responses.

    Args:
        app (Flask): Application holding ``JWT_SECRET_KEY`` in its config.
    """
    jwt.init_app(app)


@jwt.token_in_blocklist_loader
def check_if_token_revoked(jwt_header, jwt_payload: dict):
    return get_blocklist().is_revoked(jwt_payload["jti"])


@jwt.unauthorized_loader
def missing_token_callback(reason):
    return jsonify({"error": "Authorization header is required"}), 401


@jwt.invalid_token_loader
def invalid_token_callback(reason):
    return jsonify({"error": "Invalid or expired token"}), 401


@jwt.expired_token_loader
def expired_token_callback(jwt_header, jwt_payload):
    return jsonify({"error": "Invalid or expired token"}), 401


@jwt.revoked_token_loader
def revoked_token_callback(jwt_header, jwt_payload):
    return jsonify({"error": "Token has been revoked"}), 401


@jwt.needs_fresh_token_loader
def fresh_token_callback(jwt_header, jwt_payload):
    return jsonify({"error": "Fresh token required"}), 401


def issue_tokens(user_id: str, email: str | None, role: str | None):
    """
    Create an access/refresh token pair for a user.

    The access token carries the ``jti`` of its refresh token so that logout
    can revoke both.

    Args:
        user_id (str): JWT identity.
        email (str | None): Email claim.
        role (str | None): Role claim.

    Returns:
        dict: ``token`` and ``refresh_token``.
    """
    claims = {"email": email, "role": role or "USER"}
    refresh_token = create_refresh_token(identity=user_id, additional_claims=claims)
    refresh_jti = decode_token(refresh_token)["jti"]
    token = create_access_token(identity=user_id, additional_claims={**claims, "refresh_jti": refresh_jti})
    return {"token": token, "refresh_token": refresh_token}

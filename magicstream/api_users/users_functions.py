import logging
from datetime import datetime, timezone
from typing import Any

import bcrypt
import redis
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from ..database import DocumentStore
from ..errors import Conflict, MagicStreamError, Unauthorized
from ..models import UserRegistration

logger = logging.getLogger(__name__)


def generate_next_user_id(store: DocumentStore):
    """
    Generate the next user identifier.

    Args:
        store (DocumentStore): Store wrapper holding the users collection.

    Returns:
        str: Identifier formatted like ``u000000000001``.
    """
    with store.operation("Failed to allocate user id"):
        latest_user = store.users.find_one(
            {"user_id": {"$regex": r"^u\d{12}$"}},
            sort=[("user_id", DESCENDING)],
            projection={"user_id": 1},
        )

    if not latest_user:
        return "u000000000001"

    raw_identifier = str(latest_user.get("user_id", "")).strip()
    try:
        numeric = int(raw_identifier[1:])
    except (ValueError, TypeError):
        numeric = 0

    return f"u{numeric + 1:012d}"


def serialize_user(document: dict | None):
    """
    Serialize a user document to a JSON-friendly dictionary.

    Args:
        document (dict | None): MongoDB document.

    Returns:
        dict: Safe copy without the ``_id`` and password fields.
    """
    if not document:
        return {}
    payload = dict(document)
    payload.pop("_id", None)
    payload.pop("password", None)
    for key in ("created_at", "updated_at"):
        if isinstance(payload.get(key), datetime):
            payload[key] = payload[key].isoformat()
    return payload


def hash_password(password: str):
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None):
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def find_user_by_email(store: DocumentStore, email: str):
    with store.operation("Failed to fetch user"):
        return store.users.find_one({"email": email.lower()})


def create_user(store: DocumentStore, registration: UserRegistration):
    """
    Insert a new user account.

    Args:
        store (DocumentStore): Store wrapper.
        registration (UserRegistration): Validated registration body.

    Returns:
        dict: Created user without credentials.

    Raises:
        Conflict: The email address is already registered.
    """
    email = registration.email.lower()
    if find_user_by_email(store, email):
        raise Conflict("User already exists")

    now = datetime.now(timezone.utc)
    document = registration.model_dump()
    document.update({
        "user_id": generate_next_user_id(store),
        "email": email,
        "password": hash_password(registration.password),
        "created_at": now,
        "updated_at": now,
    })

    with store.operation("Failed to create user"):
        try:
            store.users.insert_one(document)
        except DuplicateKeyError:
            raise Conflict("User already exists")

    logger.info("Registered user %s", document["user_id"])
    return serialize_user(document)


def authenticate(store: DocumentStore, email: str, password: str):
    """
    Check credentials.

    Args:
        store (DocumentStore): Store wrapper.
        email (str): Login email.
        password (str): Plain-text password.

    Returns:
        dict: Matching user document.

    Raises:
        Unauthorized: Unknown email or wrong password.
    """
    user = find_user_by_email(store, email)
    if not user or not verify_password(password, user.get("password")):
        raise Unauthorized("Invalid email or password")
    return user


def build_cache_key(prefix: str, *parts: Any):
    """
    Build a Redis key with a prefix and optional segments.

    Args:
        prefix (str): Root part of the key.
        *parts: Additional segments.

    Returns:
        str: Colon-separated key.
    """
    normalized = [prefix]
    for part in parts:
        normalized.append(str(part) if part is not None else "")
    return ":".join(normalized)


class TokenBlocklist:
    """
    Revoked JWT identifiers kept in Redis until the token would expire anyway.

    Args:
        redis_client (redis.Redis): Redis connection.
        default_ttl (int): Lifetime of an entry when the token carries no ``exp``.
    """

    def __init__(self, redis_client: redis.Redis, default_ttl: int):
        self.redis = redis_client
        self.default_ttl = default_ttl

    def revoke(self, jti: str, expires_at: int | None):
        """
        Mark a token identifier as revoked.

        Args:
            jti (str): ``jti`` claim of the token.
            expires_at (int | None): ``exp`` claim, as a UNIX timestamp.
        """
        ttl = self.default_ttl
        if expires_at:
            ttl = max(int(expires_at - datetime.now(timezone.utc).timestamp()), 1)
        try:
            self.redis.setex(build_cache_key("revoked", jti), ttl, "1")
        except redis.RedisError as exc:
            logger.error("Failed to revoke token: %s", exc)
            raise MagicStreamError("Token store unavailable") from exc

    def is_revoked(self, jti: str):
        try:
            return self.redis.exists(build_cache_key("revoked", jti)) > 0
        except redis.RedisError as exc:
            logger.error("Failed to read token blocklist: %s", exc)
            raise MagicStreamError("Token store unavailable") from exc

import logging
import os
from datetime import timedelta

from dotenv import load_dotenv

DEFAULT_RECOMMENDED_MOVIE_LIMIT = 5
DEFAULT_STORE_TIMEOUT_SECONDS = 100
DEFAULT_TOKEN_TTL_SECONDS = 24 * 60 * 60
DEFAULT_REFRESH_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
SENTINEL_RANKING_VALUE = 999


def safe_int(value, default=0):
    """
    Parse a value into an integer, tolerating padded strings.

    Args:
        value (Any): Raw value to convert.
        default (int): Fallback value when parsing fails.

    Returns:
        int: Parsed integer or the default.
    """
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def parse_limit_setting(raw_value: object, default_limit: int = DEFAULT_RECOMMENDED_MOVIE_LIMIT):
    """
    Sanitize the recommendation limit setting.

    Args:
        raw_value (Any): Limit value read from the environment.
        default_limit (int): Fallback limit when parsing fails.

    Returns:
        int: A non-negative limit, or the default for missing/invalid values.
    """
    limit = safe_int(raw_value, None)
    if limit is None or limit < 0:
        return default_limit
    return limit


def parse_origins(raw_value: str | None):
    """
    Split a comma-separated origin list.

    Args:
        raw_value (str | None): Value of ``ALLOWED_ORIGINS``.

    Returns:
        list[str] | str: Origins list, or ``"*"`` when unset.
    """
    if not raw_value or not raw_value.strip():
        return "*"
    return [origin.strip() for origin in raw_value.split(",") if origin.strip()]


def load_settings(environ=None):
    """
    Read the service configuration from the environment.

    A ``.env`` file in the working directory is loaded first when present;
    real environment variables take precedence over it.

    Args:
        environ (Mapping | None): Alternative source, mainly for tests.

    Returns:
        dict: Flask config mapping.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    token_ttl = safe_int(environ.get("TOKEN_TTL_SECONDS"), DEFAULT_TOKEN_TTL_SECONDS)
    refresh_ttl = safe_int(environ.get("REFRESH_TOKEN_TTL_SECONDS"), DEFAULT_REFRESH_TOKEN_TTL_SECONDS)

    return {
        "MONGODB_URI": environ.get("MONGODB_URI"),
        "DATABASE_NAME": environ.get("DATABASE_NAME"),
        "OPENAI_API_KEY": environ.get("OPENAI_API_KEY"),
        "OPENAI_MODEL": environ.get("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
        "BASE_PROMPT_TEMPLATE": environ.get("BASE_PROMPT_TEMPLATE"),
        "RECOMMENDED_MOVIE_LIMIT": parse_limit_setting(environ.get("RECOMMENDED_MOVIE_LIMIT")),
        "STORE_TIMEOUT_SECONDS": safe_int(environ.get("STORE_TIMEOUT_SECONDS"), DEFAULT_STORE_TIMEOUT_SECONDS),
        "REDIS_HOST": environ.get("REDIS_HOST", "localhost"),
        "REDIS_PORT": safe_int(environ.get("REDIS_PORT"), 6379),
        "REDIS_DB": safe_int(environ.get("REDIS_DB"), 0),
        "JWT_SECRET_KEY": environ.get("JWT_SECRET_KEY"),
        "JWT_ACCESS_TOKEN_EXPIRES": timedelta(seconds=token_ttl),
        "JWT_REFRESH_TOKEN_EXPIRES": timedelta(seconds=refresh_ttl),
        "REFRESH_TOKEN_TTL_SECONDS": refresh_ttl,
        "ALLOWED_ORIGINS": parse_origins(environ.get("ALLOWED_ORIGINS")),
        "LOG_LEVEL": (environ.get("LOG_LEVEL") or "INFO").upper(),
    }


def configure_logging(level: str = "INFO"):
    """Install a basic log format for the service process."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

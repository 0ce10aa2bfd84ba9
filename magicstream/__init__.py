import atexit

import redis
from flask import Flask, jsonify
from flask_cors import CORS

from .api_movies.movies import movies_bp
from .api_movies.rankings import RankingClassifier
from .api_users.auth import init_jwt
from .api_users.users import users_bp
from .api_users.users_functions import TokenBlocklist
from .config import load_settings
from .database import DocumentStore
from .errors import ConfigurationError, MagicStreamError
from .services import EXTENSION_KEY


def create_app(settings: dict | None = None, mongo_client=None, redis_client=None, llm_client=None):
    """
    Build the Flask application and its shared services.

    Args:
        settings (dict | None): Config mapping; read from the environment when omitted.
        mongo_client (MongoClient | None): Client to use instead of one built from ``MONGODB_URI``.
        redis_client (redis.Redis | None): Connection holding revoked token identifiers.
        llm_client (OpenAI | None): Completion client used by the ranking classifier.

    Returns:
        Flask: Configured application.

    Raises:
        ConfigurationError: The database connection or JWT secret settings are missing.
    """
    if settings is None:
        settings = load_settings()

    app = Flask(__name__)
    app.config.from_mapping(settings)
    app.json.sort_keys = False
    CORS(app, origins=app.config["ALLOWED_ORIGINS"])

    timeout_seconds = app.config["STORE_TIMEOUT_SECONDS"]
    if mongo_client is None:
        store = DocumentStore.from_uri(app.config["MONGODB_URI"], app.config["DATABASE_NAME"], timeout_seconds)
        atexit.register(store.close)
    else:
        store = DocumentStore(mongo_client, app.config["DATABASE_NAME"], timeout_seconds)
    store.ensure_indexes()

    if not app.config.get("JWT_SECRET_KEY"):
        raise ConfigurationError("JWT_SECRET_KEY not set!")

    if redis_client is None:
        redis_client = redis.Redis(
            host=app.config["REDIS_HOST"],
            port=app.config["REDIS_PORT"],
            db=app.config["REDIS_DB"],
        )

    app.extensions[EXTENSION_KEY] = {
        "store": store,
        "blocklist": TokenBlocklist(redis_client, app.config["REFRESH_TOKEN_TTL_SECONDS"]),
        "classifier": RankingClassifier(
            store,
            app.config["OPENAI_API_KEY"],
            app.config["BASE_PROMPT_TEMPLATE"],
            app.config["OPENAI_MODEL"],
            timeout_seconds,
            client=llm_client,
        ),
    }

    @app.errorhandler(MagicStreamError)
    def handle_service_error(exc: MagicStreamError):
        if exc.status_code >= 500:
            app.logger.error("%s: %s", type(exc).__name__, exc.message)
        return jsonify(exc.to_payload()), exc.status_code

    init_jwt(app)
    app.register_blueprint(movies_bp)
    app.register_blueprint(users_bp)
    return app

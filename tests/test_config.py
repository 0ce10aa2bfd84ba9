from datetime import timedelta

import fakeredis
import mongomock
import pytest

from magicstream import create_app
from magicstream.config import load_settings, parse_limit_setting, parse_origins
from magicstream.database import DocumentStore
from magicstream.errors import ConfigurationError


@pytest.mark.parametrize("raw, expected", [
    (None, 5),
    ("", 5),
    ("abc", 5),
    ("-1", 5),
    ("0", 0),
    (" 12 ", 12),
])
def test_parse_limit_setting(raw, expected):
    assert parse_limit_setting(raw) == expected


def test_parse_origins():
    assert parse_origins(None) == "*"
    assert parse_origins("http://a.test, http://b.test,") == ["http://a.test", "http://b.test"]


def test_load_settings_defaults():
    settings = load_settings({"MONGODB_URI": "mongodb://db", "DATABASE_NAME": "magic"})

    assert settings["RECOMMENDED_MOVIE_LIMIT"] == 5
    assert settings["STORE_TIMEOUT_SECONDS"] == 100
    assert settings["REDIS_PORT"] == 6379
    assert settings["OPENAI_API_KEY"] is None
    assert settings["LOG_LEVEL"] == "INFO"
    assert settings["JWT_ACCESS_TOKEN_EXPIRES"] == timedelta(days=1)
    assert settings["JWT_REFRESH_TOKEN_EXPIRES"] == timedelta(days=7)


def test_missing_connection_string_is_fatal():
    with pytest.raises(ConfigurationError):
        create_app(load_settings({"DATABASE_NAME": "magic"}), redis_client=fakeredis.FakeRedis())


def test_missing_jwt_secret_is_fatal():
    settings = load_settings({"MONGODB_URI": "mongodb://db", "DATABASE_NAME": "magic"})

    with pytest.raises(ConfigurationError, match="JWT_SECRET_KEY"):
        create_app(settings, mongo_client=mongomock.MongoClient(), redis_client=fakeredis.FakeRedis())


def test_missing_database_name_is_fatal():
    with pytest.raises(ConfigurationError):
        DocumentStore(mongomock.MongoClient(), None)


def test_store_opens_named_collections():
    store = DocumentStore(mongomock.MongoClient(), "magic", timeout_seconds=5)

    assert store.open_collection("movies").name == "movies"
    assert store.rankings.name == "rankings"
    assert store.timeout_seconds == 5

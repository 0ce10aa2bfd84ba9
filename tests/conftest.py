from types import SimpleNamespace

import fakeredis
import mongomock
import pytest

from magicstream import create_app
from magicstream.config import load_settings

RANKINGS = [
    {"ranking_name": "Positive", "ranking_value": 1},
    {"ranking_name": "Neutral", "ranking_value": 2},
    {"ranking_name": "Negative", "ranking_value": 3},
    {"ranking_name": "Unranked", "ranking_value": 999},
]

GENRES = [
    {"genre_id": 1, "genre_name": "Drama"},
    {"genre_id": 2, "genre_name": "Comedy"},
]


class FakeCompletions:
    """Records prompts and answers with a fixed reply, or raises ``error``."""

    def __init__(self, reply="Positive"):
        self.reply = reply
        self.error = None
        self.prompts = []

    def create(self, model, messages):
        self.prompts.append(messages[0]["content"])
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeLLM:
    def __init__(self, reply="Positive"):
        self.completions = FakeCompletions(reply)
        self.chat = SimpleNamespace(completions=self.completions)


def build_movie(imdb_id="tt001", title="A Film", genres=("Drama",), ranking_value=None):
    movie = {
        "imdb_id": imdb_id,
        "title": title,
        "poster_path": "https://example.com/poster.jpg",
        "youtube_id": "yt123",
        "genre": [{"genre_id": index, "genre_name": name} for index, name in enumerate(genres, start=1)],
    }
    if ranking_value is not None:
        movie["ranking"] = {"ranking_name": f"R{ranking_value}", "ranking_value": ranking_value}
    return movie


@pytest.fixture
def settings():
    return load_settings({
        "MONGODB_URI": "mongodb://localhost:27017",
        "DATABASE_NAME": "magicstream_test",
        "OPENAI_API_KEY": "test-key",
        "BASE_PROMPT_TEMPLATE": "Classify the review as one of: {rankings}. Review:",
        "RECOMMENDED_MOVIE_LIMIT": "5",
        "JWT_SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
    })


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def app(settings, llm):
    app = create_app(settings, mongo_client=mongomock.MongoClient(), redis_client=fakeredis.FakeRedis(), llm_client=llm)
    app.config["TESTING"] = True
    store = app.extensions["magicstream"]["store"]
    store.rankings.insert_many([dict(ranking) for ranking in RANKINGS])
    store.genres.insert_many([dict(genre) for genre in GENRES])
    return app


@pytest.fixture
def store(app):
    return app.extensions["magicstream"]["store"]


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email="viewer@example.com", password="secret123", favourite_genres=None):
    return client.post("/register", json={
        "first_name": "Test",
        "last_name": "Viewer",
        "email": email,
        "password": password,
        "favourite_genres": favourite_genres or [],
    })


def login(client, email="viewer@example.com", password="secret123"):
    return client.post("/login", json={"email": email, "password": password})


@pytest.fixture
def auth_headers(client):
    register(client, favourite_genres=[{"genre_id": 1, "genre_name": "Drama"}])
    token = login(client).get_json()["token"]
    return {"Authorization": f"Bearer {token}"}

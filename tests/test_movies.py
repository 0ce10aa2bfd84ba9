from unittest import mock

from openai import APIConnectionError
from pymongo.errors import ExecutionTimeout, OperationFailure

from conftest import build_movie
from magicstream.database import DocumentStore


def test_list_movies_is_public(client, store):
    store.movies.insert_many([build_movie("tt001"), build_movie("tt002", title="Second")])

    response = client.get("/movies")

    assert response.status_code == 200
    assert [movie["imdb_id"] for movie in response.get_json()] == ["tt001", "tt002"]
    assert all(isinstance(movie["_id"], str) for movie in response.get_json())


def test_list_movies_store_failure_returns_single_error(client, store):
    with mock.patch.object(type(store), "find_all", side_effect=OperationFailure("boom")):
        response = client.get("/movies")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to fetch movies."}


def test_store_timeout_maps_to_504(client, store):
    with mock.patch.object(type(store), "find_all", side_effect=ExecutionTimeout("too slow", code=50)):
        response = client.get("/movies")

    assert response.status_code == 504
    assert "timed out" in response.get_json()["error"]


def test_list_genres(client):
    response = client.get("/genres")

    assert response.status_code == 200
    assert [genre["genre_name"] for genre in response.get_json()] == ["Drama", "Comedy"]


def test_get_movie_requires_token(client, store):
    store.movies.insert_one(build_movie("tt001"))

    assert client.get("/movie/tt001").status_code == 401
    response = client.get("/movie/tt001", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_add_then_get_returns_equivalent_document(client, auth_headers):
    payload = build_movie("tt010", title="Roundtrip", genres=("Drama", "Comedy"))

    created = client.post("/addmovie", json=payload, headers=auth_headers)
    assert created.status_code == 201
    assert created.get_json()["acknowledged"] is True
    assert created.get_json()["inserted_id"]

    fetched = client.get("/movie/tt010", headers=auth_headers)
    assert fetched.status_code == 200
    document = fetched.get_json()
    assert document.pop("_id") == created.get_json()["inserted_id"]
    assert document == payload


def test_get_missing_movie_is_not_found(client, auth_headers):
    response = client.get("/movie/tt404", headers=auth_headers)

    assert response.status_code == 404
    assert response.get_json() == {"error": "Movie not found"}


def test_get_blank_movie_id_is_invalid(client, auth_headers):
    response = client.get("/movie/%20", headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json() == {"error": "Movie ID is required"}


def test_add_movie_validation_errors(client, auth_headers):
    payload = build_movie("tt011")
    payload["title"] = "A"
    payload["genre"] = []

    response = client.post("/addmovie", json=payload, headers=auth_headers)

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "Invalid input"
    assert "title failed on string_too_short" in body["errors"]
    assert "genre failed on too_short" in body["errors"]


def test_add_movie_without_body(client, auth_headers):
    response = client.post("/addmovie", data="not json", headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid input"}


def test_add_duplicate_movie_conflicts(client, auth_headers):
    assert client.post("/addmovie", json=build_movie("tt012"), headers=auth_headers).status_code == 201

    response = client.post("/addmovie", json=build_movie("tt012"), headers=auth_headers)

    assert response.status_code == 409


def test_update_review_stores_ranking(client, store, auth_headers, llm):
    store.movies.insert_one(build_movie("tt001"))

    response = client.patch("/updatereview/tt001", json={"admin_review": "great film"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json() == {"rankin_name": "Positive", "admin_review": "great film"}
    stored = store.movies.find_one({"imdb_id": "tt001"})
    assert stored["admin_review"] == "great film"
    assert stored["ranking"] == {"ranking_value": 1, "ranking_name": "Positive"}
    assert llm.completions.prompts[0].endswith("Positive,Neutral,Negative. Review:\ngreat film")


def test_update_review_unknown_movie(client, auth_headers):
    response = client.patch("/updatereview/tt404", json={"admin_review": "meh"}, headers=auth_headers)

    assert response.status_code == 404


def test_update_review_requires_review(client, store, auth_headers):
    store.movies.insert_one(build_movie("tt001"))

    response = client.patch("/updatereview/tt001", json={}, headers=auth_headers)

    assert response.status_code == 400


def test_update_review_surfaces_upstream_error(client, store, auth_headers, llm):
    store.movies.insert_one(build_movie("tt001"))
    llm.completions.error = APIConnectionError(request=mock.Mock())

    response = client.patch("/updatereview/tt001", json={"admin_review": "great film"}, headers=auth_headers)

    assert response.status_code == 500
    assert response.get_json()["error"] == "Connection error."
    assert "ranking" not in store.movies.find_one({"imdb_id": "tt001"})


def test_update_review_without_api_key(app, client, store, auth_headers):
    store.movies.insert_one(build_movie("tt001"))
    app.extensions["magicstream"]["classifier"].api_key = None

    response = client.patch("/updatereview/tt001", json={"admin_review": "great film"}, headers=auth_headers)

    assert response.status_code == 500
    assert response.get_json() == {"error": "could not read OPENAI_API_KEY"}


class FailingCursor:
    """Cursor that breaks while results are being read."""

    def __init__(self):
        self.closed = False

    def sort(self, spec):
        return self

    def limit(self, count):
        return self

    def __iter__(self):
        yield build_movie("tt001")
        raise OperationFailure("cursor killed")

    def close(self):
        self.closed = True


def test_cursor_closed_when_iteration_fails(client):
    cursor = FailingCursor()
    collection = mock.Mock()
    collection.find.return_value = cursor

    with mock.patch.object(DocumentStore, "movies", new_callable=mock.PropertyMock, return_value=collection):
        response = client.get("/movies")

    assert cursor.closed
    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to fetch movies."}


def test_cursor_closed_after_sorted_read(store):
    store.movies.insert_many([build_movie("tt002", ranking_value=2), build_movie("tt001", ranking_value=1)])
    cursor = store.movies.find({})
    collection = mock.Mock()
    collection.find.return_value = cursor

    with mock.patch.object(cursor, "close", wraps=cursor.close) as close:
        documents = store.find_all(collection, sort=[("ranking.ranking_value", 1)], limit=1)

    assert [document["imdb_id"] for document in documents] == ["tt001"]
    close.assert_called_once()

from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from ..config import SENTINEL_RANKING_VALUE
from ..database import DocumentStore
from ..errors import Conflict, DataShapeError, InvalidInput, NotFound
from ..models import Movie


def serialize_document(doc: dict | None):
    """
    Convert a MongoDB document into an API-friendly dictionary.

    Args:
        doc (dict | None): MongoDB document.

    Returns:
        dict: Serializable representation with a string ``_id``.
    """
    if not doc:
        return {}

    serialized = {}
    for key, value in doc.items():
        if key == "_id":
            serialized[key] = str(value)
        else:
            serialized[key] = value
    return serialized


def fetch_documents(store: DocumentStore, collection: object, failure_message: str, filter_query: dict | None = None,
                    sort: list | None = None, limit: int | None = None):
    """
    Retrieve and serialize documents from MongoDB.

    Args:
        store (DocumentStore): Store wrapper applying the operation timeout.
        collection (Collection): PyMongo collection handle.
        failure_message (str): Message returned when the query fails.
        filter_query (dict | None): Optional MongoDB filter.
        sort (list | None): Optional sort specification.
        limit (int | None): Optional result cap.

    Returns:
        list[dict]: Serialized documents.
    """
    with store.operation(failure_message):
        items = store.find_all(collection, filter_query, sort=sort, limit=limit)
    return [serialize_document(item) for item in items]


def clean_identifier(movie_id: str | None):
    movie_id = (movie_id or "").strip()
    if not movie_id:
        raise InvalidInput("Movie ID is required")
    return movie_id


def fetch_movie(store: DocumentStore, movie_id: str):
    """
    Look up one movie by its external identifier.

    Args:
        store (DocumentStore): Store wrapper.
        movie_id (str): ``imdb_id`` taken from the path.

    Returns:
        dict: Serialized movie.

    Raises:
        InvalidInput: The identifier is blank.
        NotFound: No movie carries that identifier.
    """
    movie_id = clean_identifier(movie_id)
    with store.operation("Failed to fetch movie"):
        document = store.movies.find_one({"imdb_id": movie_id})
    if not document:
        raise NotFound("Movie not found")
    return serialize_document(document)


def insert_movie(store: DocumentStore, movie: Movie):
    """
    Persist a validated movie.

    Args:
        store (DocumentStore): Store wrapper.
        movie (Movie): Parsed request body.

    Returns:
        dict: Insert result with the store-assigned identifier.

    Raises:
        Conflict: A movie with the same ``imdb_id`` already exists.
    """
    with store.operation("Failed to add movie"):
        try:
            result = store.movies.insert_one(movie.model_dump(exclude_none=True))
        except DuplicateKeyError:
            raise Conflict(f"Movie {movie.imdb_id} already exists")
    return {"inserted_id": str(result.inserted_id), "acknowledged": result.acknowledged}


def update_admin_review(store: DocumentStore, movie_id: str, admin_review: str, ranking_name: str, ranking_value: int):
    """
    Store the admin review and its computed ranking on a movie.

    Args:
        store (DocumentStore): Store wrapper.
        movie_id (str): ``imdb_id`` of the movie.
        admin_review (str): Review text.
        ranking_name (str): Category returned by the classifier.
        ranking_value (int): Numeric value of that category.

    Raises:
        NotFound: No movie matched the identifier.
    """
    update = {
        "$set": {
            "admin_review": admin_review,
            "ranking": {
                "ranking_value": ranking_value,
                "ranking_name": ranking_name,
            },
        }
    }
    with store.operation("Error updating movie"):
        result = store.movies.update_one({"imdb_id": movie_id}, update)
    if result.matched_count == 0:
        raise NotFound("Movie not found")


def extract_genre_names(document: dict | None):
    """
    Project a user's ``favourite_genres`` field into genre names.

    Args:
        document (dict | None): User document fetched with a projection.

    Returns:
        list[str]: Genre names in stored order; empty when the user or the
        field is missing.

    Raises:
        DataShapeError: The field exists but is not a list of genres.
    """
    if not document or document.get("favourite_genres") is None:
        return []

    raw_genres = document["favourite_genres"]
    if not isinstance(raw_genres, list):
        raise DataShapeError("favourite_genres is not a list")

    names = []
    for entry in raw_genres:
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, dict) and isinstance(entry.get("genre_name"), str):
            names.append(entry["genre_name"])
        else:
            raise DataShapeError("favourite_genres contains an invalid entry")
    return names


def get_favourite_genres(store: DocumentStore, user_id: str):
    with store.operation("Failed to load favourite genres"):
        document = store.users.find_one({"user_id": user_id}, {"favourite_genres": 1, "_id": 0})
    return extract_genre_names(document)


def recommend_movies(store: DocumentStore, user_id: str, limit: int):
    """
    Pick movies in the user's favourite genres, best ranked first.

    Args:
        store (DocumentStore): Store wrapper.
        user_id (str): Identifier of the authenticated user.
        limit (int): Maximum number of movies returned.

    Returns:
        list[dict]: Serialized movies sorted by ``ranking.ranking_value``; movies
        without a ranking (or with the sentinel one) are left out.
    """
    genre_names = get_favourite_genres(store, user_id)
    if not genre_names or limit <= 0:
        return []

    return fetch_documents(
        store,
        store.movies,
        "Failed to fetch recommended movies",
        {
            "genre.genre_name": {"$in": genre_names},
            "ranking.ranking_value": {"$exists": True, "$ne": SENTINEL_RANKING_VALUE},
        },
        sort=[("ranking.ranking_value", ASCENDING)],
        limit=limit,
    )

import logging
from contextlib import contextmanager

import pymongo
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .errors import ConfigurationError, StoreError, StoreTimeout

logger = logging.getLogger(__name__)

MOVIES = "movies"
RANKINGS = "rankings"
USERS = "users"
GENRES = "genres"


class DocumentStore:
    """
    Access point to the MongoDB database backing the service.

    One instance is built at start-up and shared by every request; the
    underlying ``MongoClient`` keeps its own thread-safe connection pool.

    Args:
        client (MongoClient): Connected client (or a compatible stand-in).
        database_name (str): Name of the database holding the collections.
        timeout_seconds (float): Budget applied to every store operation.
    """

    def __init__(self, client: MongoClient, database_name: str, timeout_seconds: float = 100):
        if not database_name:
            raise ConfigurationError("DATABASE_NAME not set!")
        self.client = client
        self.database_name = database_name
        self.timeout_seconds = timeout_seconds
        self.db = client[database_name]

    @classmethod
    def from_uri(cls, uri: str | None, database_name: str | None, timeout_seconds: float = 100):
        """
        Build a store from a connection string.

        Args:
            uri (str | None): Value of ``MONGODB_URI``.
            database_name (str | None): Value of ``DATABASE_NAME``.
            timeout_seconds (float): Per-operation budget.

        Returns:
            DocumentStore: Store bound to a fresh client.
        """
        if not uri:
            raise ConfigurationError("MONGODB_URI not set!")
        logger.info("Connecting to MongoDB database %s", database_name)
        return cls(MongoClient(uri), database_name, timeout_seconds)

    def open_collection(self, name: str) -> Collection:
        return self.db[name]

    @property
    def movies(self) -> Collection:
        return self.open_collection(MOVIES)

    @property
    def rankings(self) -> Collection:
        return self.open_collection(RANKINGS)

    @property
    def users(self) -> Collection:
        return self.open_collection(USERS)

    @property
    def genres(self) -> Collection:
        return self.open_collection(GENRES)

    @contextmanager
    def operation(self, failure_message: str):
        """
        Run store calls under the operation timeout and translate driver errors.

        Args:
            failure_message (str): Client-facing message for non-timeout failures.

        Raises:
            StoreTimeout: The operation exceeded ``timeout_seconds``.
            StoreError: Any other driver failure.
        """
        try:
            with pymongo.timeout(self.timeout_seconds):
                yield
        except PyMongoError as exc:
            if getattr(exc, "timeout", False):
                logger.error("Store operation timed out: %s", exc)
                raise StoreTimeout() from exc
            logger.error("%s: %s", failure_message, exc)
            raise StoreError(failure_message) from exc

    def find_all(self, collection: Collection, filter_query: dict | None = None, projection: dict | None = None,
                 sort: list | None = None, limit: int | None = None):
        """
        Read every document matching a filter, releasing the cursor on all paths.

        Args:
            collection (Collection): Collection to query.
            filter_query (dict | None): MongoDB filter.
            projection (dict | None): Optional projection.
            sort (list | None): Optional ``[(field, direction)]`` sort spec.
            limit (int | None): Optional positive result cap.

        Returns:
            list[dict]: Raw documents.
        """
        cursor = collection.find(filter_query or {}, projection)
        try:
            if sort:
                cursor = cursor.sort(sort)
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)
        finally:
            cursor.close()

    def ensure_indexes(self):
        with self.operation("Failed to create indexes"):
            self.movies.create_index([("imdb_id", ASCENDING)], unique=True)
            self.users.create_index([("email", ASCENDING)], unique=True)

    def close(self):
        logger.info("Closing MongoDB client")
        self.client.close()

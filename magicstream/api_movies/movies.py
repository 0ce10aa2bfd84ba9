from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from ..models import Movie, ReviewUpdate, parse_body
from ..services import get_classifier, get_store
from .movies_functions import (
    clean_identifier,
    fetch_documents,
    fetch_movie,
    insert_movie,
    recommend_movies,
    update_admin_review,
)

movies_bp = Blueprint("movies", __name__)


@movies_bp.route("/hello", methods=["GET"])
def hello():
    return "Hello, MagicStreamMovies"


@movies_bp.route("/movies", methods=["GET"])
def get_movies():
    """
    Handle GET requests for the whole catalog.

    Returns:
        Response: Flask response with every movie.
    """
    store = get_store()
    movies = fetch_documents(store, store.movies, "Failed to fetch movies.")
    return jsonify(movies)


@movies_bp.route("/genres", methods=["GET"])
def get_genres():
    store = get_store()
    genres = fetch_documents(store, store.genres, "Failed to fetch genres.")
    return jsonify(genres)


@movies_bp.route("/movie/<imdb_id>", methods=["GET"])
@jwt_required()
def get_movie(imdb_id: str):
    """
    Handle GET requests for one movie.

    Args:
        imdb_id (str): External identifier from the path segment.

    Returns:
        Response: Flask response with the movie or an error payload.
    """
    movie = fetch_movie(get_store(), imdb_id)
    return jsonify(movie)


@movies_bp.route("/addmovie", methods=["POST"])
@jwt_required()
def add_movie():
    """
    Handle POST requests that insert a movie.

    Returns:
        Response: Insert result and status 201.
    """
    movie = parse_body(Movie, request.get_json(silent=True))
    result = insert_movie(get_store(), movie)
    current_app.logger.info("Movie %s added by %s", movie.imdb_id, get_jwt_identity())
    return jsonify(result), 201


@movies_bp.route("/updatereview/<imdb_id>", methods=["PATCH"])
@jwt_required()
def admin_review_update(imdb_id: str):
    """
    Handle PATCH requests that store an admin review and its AI ranking.

    Args:
        imdb_id (str): External identifier from the path segment.

    Returns:
        Response: Ranking name and the stored review.
    """
    movie_id = clean_identifier(imdb_id)
    body = parse_body(ReviewUpdate, request.get_json(silent=True))

    ranking_name, ranking_value = get_classifier().classify(body.admin_review)
    update_admin_review(get_store(), movie_id, body.admin_review, ranking_name, ranking_value)

    return jsonify({"rankin_name": ranking_name, "admin_review": body.admin_review})


@movies_bp.route("/recommendedmovies", methods=["GET"])
@jwt_required()
def get_recommended_movies():
    """
    Handle GET requests for the authenticated user's recommendations.

    Returns:
        Response: Movies from the user's favourite genres, best ranked first.
    """
    limit = current_app.config["RECOMMENDED_MOVIE_LIMIT"]
    movies = recommend_movies(get_store(), get_jwt_identity(), limit)
    return jsonify(movies)

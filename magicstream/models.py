from typing import Literal

from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator

from .errors import InvalidInput


class Genre(BaseModel):
    genre_id: int
    genre_name: str = Field(min_length=2, max_length=100)


class Ranking(BaseModel):
    ranking_value: int
    ranking_name: str = Field(min_length=1)


class Movie(BaseModel):
    """Catalog entry as accepted by ``POST /addmovie``."""

    imdb_id: str = Field(min_length=1)
    title: str = Field(min_length=2, max_length=500)
    poster_path: str
    youtube_id: str = Field(min_length=1)
    genre: list[Genre] = Field(min_length=1)
    admin_review: str | None = None
    ranking: Ranking | None = None

    @field_validator("imdb_id", "youtube_id")
    @classmethod
    def strip_identifier(cls, value: str):
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("poster_path")
    @classmethod
    def check_url(cls, value: str):
        value = value.strip()
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return value


class ReviewUpdate(BaseModel):
    admin_review: str = Field(min_length=1)


class UserRegistration(BaseModel):
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    role: Literal["ADMIN", "USER"] = "USER"
    favourite_genres: list[Genre] = Field(default_factory=list)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


def describe_errors(exc: ValidationError):
    """
    Flatten pydantic errors into ``"<field> failed on <rule>"`` strings.

    Args:
        exc (ValidationError): Error raised while parsing a payload.

    Returns:
        list[str]: One message per failing field.
    """
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "body"
        messages.append(f"{field} failed on {error['type']}")
    return messages


def parse_body(model: type[BaseModel], data: object):
    """
    Validate a decoded JSON body against a model.

    Args:
        model (type[BaseModel]): Target model.
        data (Any): Result of ``request.get_json(silent=True)``.

    Returns:
        BaseModel: Parsed instance.

    Raises:
        InvalidInput: The body is missing or fails validation.
    """
    if not isinstance(data, dict):
        raise InvalidInput("Invalid input")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidInput("Invalid input", details=describe_errors(exc)) from exc

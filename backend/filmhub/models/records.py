"""Domain records exchanged with the document store and the movie catalog.

Backend documents use camelCase keys; catalog payloads use snake_case. Records
are frozen and every field has a default, so partial construction is safe.
"""

import time
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from filmhub.errors import DecodeError


def now_millis() -> int:
    return int(time.time() * 1000)


# ── Catalog records (snake_case JSON) ────────────────────────────

class CatalogRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class MovieSummary(CatalogRecord):
    """A movie as returned by the catalog's list, search and detail endpoints."""
    id: int = 0
    title: str = ""
    original_title: str = ""
    overview: str = ""
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: str = ""
    vote_average: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0
    genre_ids: list[int] = Field(default_factory=list)
    adult: bool = False
    original_language: str = ""


class MoviePage(CatalogRecord):
    page: int = 0
    results: list[MovieSummary] = Field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0


class Genre(CatalogRecord):
    id: int = 0
    name: str = ""


class VideoTrailer(CatalogRecord):
    key: str = ""
    name: str = ""
    site: str = "YouTube"
    type: str = "Trailer"
    official: bool = False


# ── Backend documents (camelCase keys) ───────────────────────────

class Document(BaseModel):
    """Base for records persisted in the document store."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Review(Document):
    id: str = ""
    movie_id: int = 0
    user_id: str = ""
    user_name: str = ""
    user_email: str = ""
    rating: float = Field(default=0.0, ge=0, le=5)
    review_text: str = ""
    created_at: int = Field(default_factory=now_millis)
    updated_at: int = Field(default_factory=now_millis)


class Rating(Document):
    id: str = ""
    movie_id: int = 0
    user_id: str = ""
    rating: float = Field(default=0.0, ge=0, le=5)
    created_at: int = Field(default_factory=now_millis)


class MovieStats(Document):
    """Denormalized aggregate, persisted under ``movie_stats/{movieId}``."""
    movie_id: int = 0
    average_rating: float = 0.0
    total_ratings: int = 0
    total_reviews: int = 0


class WatchlistItem(Document):
    id: str = ""
    user_id: str = ""
    movie_id: int = 0
    added_at: int = Field(default_factory=now_millis)


class FavoriteMovie(Document):
    id: str = ""
    user_id: str = ""
    movie_id: int = 0
    added_at: int = Field(default_factory=now_millis)


class MovieList(Document):
    id: str = ""
    user_id: str = ""
    title: str = ""
    description: str = ""
    movie_ids: list[int] = Field(default_factory=list)
    is_public: bool = True
    created_at: int = Field(default_factory=now_millis)
    updated_at: int = Field(default_factory=now_millis)


class User(Document):
    uid: str = ""
    email: str = ""
    display_name: str = ""
    photo_url: str = ""
    is_admin: bool = False
    is_active: bool = True
    created_at: int = Field(default_factory=now_millis)
    deactivated_at: Optional[int] = None


class Report(Document):
    id: str = ""
    reported_item_id: str = ""
    reported_item_type: str = ""       # "review" | "user"
    reported_user_id: str = ""
    reporter_user_id: str = ""
    reason: str = ""
    description: str = ""
    status: str = "pending"            # pending | reviewed | resolved | rejected
    created_at: int = Field(default_factory=now_millis)
    resolved_at: Optional[int] = None
    resolved_by: Optional[str] = None
    resolution: Optional[str] = None


class TicketResponse(Document):
    id: str = ""
    user_id: str = ""
    user_name: str = ""
    is_admin: bool = False
    message: str = ""
    created_at: int = Field(default_factory=now_millis)


class SupportTicket(Document):
    id: str = ""
    user_id: str = ""
    user_email: str = ""
    user_name: str = ""
    subject: str = ""
    description: str = ""
    category: str = ""                 # technical | account | content | other
    status: str = "open"               # open | in_progress | resolved | closed
    priority: str = "normal"           # low | normal | high | urgent
    created_at: int = Field(default_factory=now_millis)
    updated_at: int = Field(default_factory=now_millis)
    resolved_at: Optional[int] = None
    responses: list[TicketResponse] = Field(default_factory=list)


class FAQ(Document):
    id: str = ""
    question: str = ""
    answer: str = ""
    category: str = ""
    order: int = 0
    is_active: bool = True


class AdminAction(Document):
    """Append-only audit entry in ``admin_actions``."""
    action: str = ""
    review_id: str = ""
    movie_id: int = 0
    reason: str = ""
    timestamp: int = Field(default_factory=now_millis)


D = TypeVar("D", bound=Document)


def decode(model: type[D], data: dict[str, Any]) -> D:
    """Validate a raw document against its record schema."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise DecodeError(f"Malformed {model.__name__} document: {e.error_count()} invalid field(s)") from e


def decode_all(model: type[D], documents: list[dict[str, Any]]) -> list[D]:
    return [decode(model, d) for d in documents]

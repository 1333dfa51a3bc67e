"""
Data classes for family members, library movies and ephemeral suggestions.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, FrozenSet, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FamilyMember:
    name: str
    born: int
    group: str

    def age(self, current_year: int) -> int:
        return current_year - self.born


def is_valid_rating(value) -> bool:
    """Ratings are plain integers from 1 to 5 (bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 5


@dataclass
class Movie:
    """A library entry as stored in the movies collection."""
    id: str
    title: str
    year: Optional[int] = None
    poster_url: Optional[str] = None
    ratings: Dict[str, int] = field(default_factory=dict)
    reviews: Dict[str, str] = field(default_factory=dict)
    last_watched: Optional[datetime] = None
    created_at: Optional[datetime] = None
    tmdb_id: Optional[int] = None
    is_suggestion: bool = False

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Movie":
        """
        Build a Movie from a store document.

        Malformed rating entries are dropped rather than failing the whole
        snapshot.
        """
        data = data or {}
        ratings = {}
        for member, score in (data.get("ratings") or {}).items():
            if is_valid_rating(score):
                ratings[member] = score
            else:
                logger.warning("Dropping invalid rating %r by %s on %s", score, member, doc_id)

        reviews = {
            member: text
            for member, text in (data.get("reviews") or {}).items()
            if isinstance(text, str)
        }

        year = data.get("year")
        try:
            year = int(year) if year is not None else None
        except (TypeError, ValueError):
            year = None

        return cls(
            id=doc_id,
            title=str(data.get("title", "")),
            year=year,
            poster_url=data.get("posterUrl"),
            ratings=ratings,
            reviews=reviews,
            last_watched=data.get("lastWatched"),
            created_at=data.get("createdAt"),
            tmdb_id=data.get("tmdbId"),
        )


@dataclass(frozen=True)
class MovieDraft:
    """A movie about to be inserted into the library."""
    title: str
    year: Optional[int] = None
    poster_url: Optional[str] = None
    tmdb_id: Optional[int] = None

    def to_document(self) -> dict:
        doc = {
            "title": self.title,
            "year": self.year,
            "posterUrl": self.poster_url,
            "ratings": {},
            "reviews": {},
        }
        if self.tmdb_id is not None:
            doc["tmdbId"] = self.tmdb_id
        return doc


@dataclass(frozen=True)
class Suggestion:
    """An AI-proposed movie that is not part of the library yet."""
    id: str
    title: str
    year: int
    poster_url: Optional[str] = None
    is_suggestion: bool = True

    @property
    def ratings(self) -> Dict[str, int]:
        return {}

    @property
    def reviews(self) -> Dict[str, str]:
        return {}

    def to_draft(self) -> MovieDraft:
        return MovieDraft(title=self.title, year=self.year, poster_url=self.poster_url)


@dataclass(frozen=True)
class FilterState:
    query: str = ""
    eras: FrozenSet[str] = frozenset()
    genres: FrozenSet[str] = frozenset()
    moods: FrozenSet[str] = frozenset()

    def toggle(self, kind: str, label: str) -> "FilterState":
        """Return a copy with `label` added to or removed from eras/genres/moods."""
        if kind not in ("eras", "genres", "moods"):
            raise ValueError(f"Unknown filter kind: {kind}")
        current = getattr(self, kind)
        updated = current - {label} if label in current else current | {label}
        return replace(self, **{kind: frozenset(updated)})

    def with_query(self, query: str) -> "FilterState":
        return replace(self, query=query or "")

"""
TMDB metadata lookup for posters and canonical ids.
"""

import logging
from dataclasses import dataclass, replace

from tmdbv3api import TMDb, Movie
from tmdbv3api.exceptions import TMDbException
from requests import RequestException

from .utils import placeholder_poster_url, tmdb_poster_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MovieMetadata:
    tmdb_id: int
    poster_url: str | None


def _result_year(result):
    release_date = getattr(result, "release_date", "") or ""
    try:
        return int(release_date[:4])
    except ValueError:
        return None


def pick_best_match(results, year=None):
    """
    Choose the best search hit: the first one released in `year`, else the first hit.

    Args:
        results: TMDB search results, most relevant first
        year: Expected release year, optional

    Returns:
        The chosen result or None
    """
    results = [r for r in results if getattr(r, "id", None)]
    if not results:
        return None
    if year is not None:
        for result in results:
            if _result_year(result) == year:
                return result
    return results[0]


class MetadataLookup:
    """Looks movies up on TMDB. No match (or no API key) is not an error."""

    def __init__(self, api_key=None, movie_api=None):
        self.api_key = api_key
        if api_key and movie_api is None:
            tmdb = TMDb()
            tmdb.api_key = api_key
            movie_api = Movie()
        self.movie_api = movie_api

    @property
    def enabled(self):
        return self.movie_api is not None

    def lookup(self, title, year=None):
        """
        Find the canonical TMDB id and poster for a title.

        Returns:
            MovieMetadata or None when there is no match
        """
        if not self.enabled or not title:
            return None
        try:
            results = self.movie_api.search(title)
        except (TMDbException, RequestException) as e:
            logger.warning("TMDB lookup failed for %r: %s", title, e)
            return None

        match = pick_best_match(list(results or []), year)
        if match is None:
            return None
        return MovieMetadata(tmdb_id=match.id, poster_url=tmdb_poster_url(getattr(match, "poster_path", None)))

    def enrich_draft(self, draft):
        """Fill in poster and TMDB id, falling back to a placeholder poster."""
        metadata = self.lookup(draft.title, draft.year)
        if metadata is None:
            return replace(draft, poster_url=draft.poster_url or placeholder_poster_url(draft.title))
        return replace(
            draft,
            tmdb_id=metadata.tmdb_id,
            poster_url=metadata.poster_url or draft.poster_url or placeholder_poster_url(draft.title),
        )

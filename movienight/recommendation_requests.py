"""
Recommendation request building and response validation.

Every request kind knows how to phrase its prompt, which JSON shape it
expects back, and how to turn a validated response into something the app
can show or store:

- SeedRequest: bootstrap an empty library from the seed favorites
- GenerateRequest: suggestions from the family profile, ratings and filters
- MoreLikeThisRequest: suggestions similar to one movie
- RefreshGenresRequest: new blended genre labels from highly rated movies
"""

import json
import logging
import re
from dataclasses import dataclass, field

from . import gemini_client
from .errors import ExternalServiceError, InsufficientSignalError
from .models import MovieDraft, Suggestion
from .rating_aggregation import family_average, format_average
from .utils import (
    ERAS,
    FAMILY_MEMBERS,
    GENRE_COUNT,
    HIGH_RATING_THRESHOLD,
    HISTORY_LIMIT,
    INITIAL_GENRES,
    INITIAL_MOODS,
    SEED_COUNT,
    SEED_FAVORITES,
    SUGGESTION_COUNT,
    family_profile,
    placeholder_poster_url,
)

logger = logging.getLogger(__name__)

OK = "ok"
PARSE_ERROR = "parse_error"
SHAPE_ERROR = "shape_error"


@dataclass(frozen=True)
class ParseResult:
    status: str
    items: list = field(default_factory=list)
    message: str = ""

    @property
    def ok(self):
        return self.status == OK


# =============================================================================
# TITLES AND EXCLUSIONS
# =============================================================================

def normalize_title(title):
    """Comparison key for titles: trimmed and casefolded."""
    return (title or "").strip().casefold()


def exclusion_titles(movies):
    """All library titles, first occurrence order, exact duplicates removed."""
    titles = []
    seen = set()
    for movie in movies:
        if movie.title and movie.title not in seen:
            seen.add(movie.title)
            titles.append(movie.title)
    return titles


def render_selection(labels, order=()):
    """
    Render selected filter labels for a prompt.

    Labels known in `order` come first in that order, the rest alphabetically.
    An empty selection renders as 'Any'.
    """
    if not labels:
        return "Any"
    known = [label for label in order if label in labels]
    extra = sorted(label for label in labels if label not in order)
    return ", ".join(known + extra)


def rating_history(movies, limit=HISTORY_LIMIT):
    """
    Describe the family's rated movies for a prompt.

    Only rated movies count. The highest family averages come first, newer
    library entries first among equals, capped at `limit` entries.
    """
    rated = [m for m in movies if m.ratings]
    rated.sort(
        key=lambda m: (family_average(m.ratings), _created_timestamp(m)),
        reverse=True,
    )

    entries = []
    for movie in rated[:limit]:
        entry = f"Title: {movie.title}, Family Avg Rating: {format_average(family_average(movie.ratings))}/5"
        reviews = [f'{name} said "{text.strip()}"' for name, text in movie.reviews.items() if text and text.strip()]
        if reviews:
            entry += f", Reviews: {', '.join(reviews)}"
        entries.append(entry)
    return "; ".join(entries)


def _created_timestamp(movie):
    if movie.created_at is None:
        return 0.0
    try:
        return movie.created_at.timestamp()
    except AttributeError:
        return 0.0


def merge_genres(base, new_labels):
    """Append new labels to `base`, skipping any already present (case-insensitive)."""
    merged = list(base)
    seen = {normalize_title(label) for label in merged}
    for label in new_labels:
        key = normalize_title(label)
        if key and key not in seen:
            seen.add(key)
            merged.append(label.strip())
    return merged


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def extract_json_payload(text):
    """
    Find the JSON document in a model response.

    Returns the text itself if it parses, otherwise the outermost
    bracket-delimited substring if that parses, otherwise None.
    """
    if not isinstance(text, str):
        return None
    candidate = text.strip()
    if _parses(candidate):
        return candidate

    start = candidate.find("[")
    end = candidate.rfind("]")
    if start == -1 or end <= start:
        return None
    candidate = candidate[start:end + 1]
    return candidate if _parses(candidate) else None


def _parses(text):
    try:
        json.loads(text)
    except (ValueError, RecursionError):
        # RecursionError: nested too deeply to decode
        return False
    return True


def _load_array(text):
    payload = extract_json_payload(text)
    if payload is None:
        return None, ParseResult(PARSE_ERROR, message="The suggestion service returned something that isn't JSON.")
    data = json.loads(payload)
    if not isinstance(data, list):
        return None, ParseResult(SHAPE_ERROR, message="The suggestion service did not return a list.")
    return data, None


def parse_movie_list(text):
    """
    Validate a list of {"title": str, "year": int} objects.

    Any malformed entry rejects the whole response.
    """
    data, error = _load_array(text)
    if error:
        return error

    movies = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            return ParseResult(SHAPE_ERROR, message=f"Suggestion #{index + 1} is not an object.")
        title = item.get("title")
        year = item.get("year")
        if not isinstance(title, str) or not title.strip():
            return ParseResult(SHAPE_ERROR, message=f"Suggestion #{index + 1} has no title.")
        if not isinstance(year, int) or isinstance(year, bool):
            return ParseResult(SHAPE_ERROR, message=f"Suggestion #{index + 1} has no valid year.")
        movies.append({"title": title.strip(), "year": year})
    return ParseResult(OK, movies)


def parse_genre_list(text):
    """Validate a list of non-empty strings."""
    data, error = _load_array(text)
    if error:
        return error

    labels = []
    for index, item in enumerate(data):
        if not isinstance(item, str) or not item.strip():
            return ParseResult(SHAPE_ERROR, message=f"Genre #{index + 1} is not a label.")
        labels.append(item.strip())
    return ParseResult(OK, labels)


# =============================================================================
# SUGGESTIONS
# =============================================================================

def suggestion_id(title):
    return "rec-" + re.sub(r"\s", "", title)


def build_suggestions(candidates, library_titles=()):
    """
    Turn validated candidates into ephemeral suggestions.

    Candidates already in the library are dropped. A repeat of the same
    title and year collapses into the first one; same title with a
    different year gets a numbered id (rec-Title, rec-Title-2, ...).
    """
    in_library = {normalize_title(title) for title in library_titles}
    suggestions = []
    seen = set()
    used_ids = set()

    for candidate in candidates:
        title = candidate["title"]
        key = normalize_title(title)
        if key in in_library or (key, candidate["year"]) in seen:
            continue
        seen.add((key, candidate["year"]))

        base_id = suggestion_id(title)
        display_id = base_id
        n = 2
        while display_id in used_ids:
            display_id = f"{base_id}-{n}"
            n += 1
        used_ids.add(display_id)

        suggestions.append(Suggestion(
            id=display_id,
            title=title,
            year=candidate["year"],
            poster_url=placeholder_poster_url(title),
        ))
    return suggestions


# =============================================================================
# REQUEST KINDS
# =============================================================================

class RecommendationRequest:
    """A prompt, the response shape it expects, and post-processing."""

    schema = gemini_client.MOVIE_LIST_SCHEMA
    progress_message = "Generating new suggestions..."

    def build_prompt(self):
        raise NotImplementedError

    def parse(self, text):
        return parse_movie_list(text)

    def process(self, items):
        raise NotImplementedError


class SeedRequest(RecommendationRequest):
    progress_message = "Generating initial movie list..."

    def __init__(self, favorites=None, count=SEED_COUNT):
        self.favorites = list(SEED_FAVORITES if favorites is None else favorites)
        self.count = count

    def build_prompt(self):
        return (
            f"Generate a list of {self.count} diverse, family-appropriate movies "
            f"inspired by these favorites: {', '.join(self.favorites)}."
        )

    def process(self, items):
        drafts = []
        seen = set()
        for item in items:
            key = (normalize_title(item["title"]), item["year"])
            if key in seen:
                continue
            seen.add(key)
            drafts.append(MovieDraft(
                title=item["title"],
                year=item["year"],
                poster_url=placeholder_poster_url(item["title"]),
            ))
        return drafts


class _LibraryAwareRequest(RecommendationRequest):
    """Shared plumbing for requests that must avoid titles already owned."""

    def __init__(self, movies, roster=None, count=SUGGESTION_COUNT, history_limit=HISTORY_LIMIT):
        self.movies = list(movies)
        self.roster = FAMILY_MEMBERS if roster is None else roster
        self.count = count
        self.history_limit = history_limit

    @property
    def excluded_titles(self):
        return exclusion_titles(self.movies)

    def _preamble(self):
        history = rating_history(self.movies, self.history_limit)
        excluded = ", ".join(self.excluded_titles) or "None"
        return (
            f"Act as a movie recommender for this family: {family_profile(self.roster)}. "
            f"Their rating history is: {history or 'None yet'}. "
            f"Exclude these from suggestions as they are already in the library: {excluded}."
        )

    def process(self, items):
        return build_suggestions(items, self.excluded_titles)


class GenerateRequest(_LibraryAwareRequest):

    def __init__(self, movies, filters=None, **kwargs):
        super().__init__(movies, **kwargs)
        self.filters = filters

    def build_prompt(self):
        eras = self.filters.eras if self.filters else ()
        genres = self.filters.genres if self.filters else ()
        moods = self.filters.moods if self.filters else ()
        return (
            f"{self._preamble()} Generate {self.count} new movie suggestions based on their "
            f"profile, ratings, and these filters: Eras: {render_selection(eras, ERAS)}; "
            f"Genres: {render_selection(genres, INITIAL_GENRES)}; "
            f"Moods: {render_selection(moods, INITIAL_MOODS)}. Find novel recommendations."
        )


class MoreLikeThisRequest(_LibraryAwareRequest):

    def __init__(self, base_movie, movies, **kwargs):
        super().__init__(movies, **kwargs)
        self.base_movie = base_movie
        self.progress_message = f"Finding movies like {base_movie.title}..."

    @property
    def excluded_titles(self):
        titles = exclusion_titles(self.movies)
        if self.base_movie.title not in titles:
            titles.append(self.base_movie.title)
        return titles

    def build_prompt(self):
        return f'{self._preamble()} Generate {self.count} new movie suggestions very similar to "{self.base_movie.title}".'


class RefreshGenresRequest(RecommendationRequest):
    schema = gemini_client.GENRE_LIST_SCHEMA
    progress_message = "Creating new genres..."

    def __init__(self, movies, threshold=HIGH_RATING_THRESHOLD, count=GENRE_COUNT, limit=10, base_genres=None):
        if not 3 <= count <= 10:
            raise ValueError("count must be between 3 and 10")
        self.threshold = threshold
        self.count = count
        self.base_genres = list(INITIAL_GENRES if base_genres is None else base_genres)
        self.titles = [
            m.title for m in movies
            if m.ratings and family_average(m.ratings) >= threshold
        ][:limit]
        if not self.titles:
            raise InsufficientSignalError()

    def build_prompt(self):
        return (
            f"Based on these highly-rated movies ({', '.join(self.titles)}), generate {self.count} "
            'blended, creative genre categories. Examples: "Quirky Coming-of-Age", "Sci-Fi with a Heart". '
            "Do not use standard single-word genres."
        )

    def parse(self, text):
        return parse_genre_list(text)

    def process(self, items):
        return merge_genres(self.base_genres, items)


# =============================================================================
# EXECUTION
# =============================================================================

class SuggestionTracker:
    """Generation counter so only the newest request's answer is applied."""

    def __init__(self):
        self.generation = 0

    def begin(self):
        self.generation += 1
        return self.generation

    def is_current(self, token):
        return token == self.generation


class RecommendationService:
    """Runs requests against Gemini and validates what comes back."""

    def __init__(self, config, generate=gemini_client.generate):
        self.config = config
        self._generate = generate

    @property
    def configured(self):
        return bool(self.config.gemini_api_key)

    def run(self, request):
        """
        Execute a request.

        Raises:
            ServiceNotConfiguredError: no Gemini key, nothing is sent
            ExternalServiceError: the call failed or the response was malformed
        """
        api_key = self.config.require("gemini_api_key")
        text = self._generate(
            request.build_prompt(),
            request.schema,
            api_key=api_key,
            model=self.config.gemini_model,
            timeout=self.config.gemini_timeout,
        )
        result = request.parse(text)
        if not result.ok:
            logger.warning("Rejected %s response (%s): %s", type(request).__name__, result.status, result.message)
            raise ExternalServiceError(f"{result.message} Please try again.")
        return request.process(result.items)


def seed_library(service, store, lookup=None, request=None):
    """Generate the starter library and insert it in one batch."""
    drafts = service.run(request or SeedRequest())
    if lookup is not None:
        drafts = [lookup.enrich_draft(draft) for draft in drafts]
    return store.batch_insert(drafts)


def promote_suggestions(store, suggestions, lookup=None):
    """Move accepted suggestions into the library in one batch."""
    drafts = [s.to_draft() for s in suggestions]
    if lookup is not None:
        drafts = [lookup.enrich_draft(draft) for draft in drafts]
    return store.batch_insert(drafts)

"""
Utility functions and constants for the family movie night app.
"""

from urllib.parse import quote, quote_plus

from .models import FamilyMember

# Global configuration constants
CURRENT_YEAR = 2025

FAMILY_MEMBERS = {
    "Kate": FamilyMember("Kate", 1978, "Adult"),
    "Ryan": FamilyMember("Ryan", 1978, "Adult"),
    "Ellie": FamilyMember("Ellie", 2011, "Kid"),
    "Quinn": FamilyMember("Quinn", 2014, "Kid"),
}

GROUPS = ("Adult", "Kid")

ERAS = [
    "Pre-80s Classics",
    "80s Throwbacks",
    "90s Gems",
    "2000s Hits",
    "Modern (2010+)",
]

INITIAL_GENRES = [
    "Comedy", "Action", "Sci-Fi", "Family", "Fantasy",
    "Animation", "Drama", "Adventure", "Thriller", "Musical",
]

INITIAL_MOODS = [
    "Need a good laugh",
    "A blast from the past",
    "Something for everyone",
    "Heartwarming story",
    "Mind-bending plot",
    "Edge of your seat",
    "Epic adventure",
    "Cozy movie night",
    "Critically-acclaimed",
    "Visually stunning",
]

SEED_FAVORITES = [
    "10 Things I Hate About You",
    "Clueless",
    "The Goonies",
    "The Breakfast Club",
    "Harry and the Hendersons",
    "Adventures in Babysitting",
    "High Fidelity",
]

# Years subtracted from "now" for each watch-date choice
WATCHED_OPTIONS = {
    "Recent (<1yr)": 0,
    "A While Ago (~3yr)": 3,
    "A Long Time Ago (>5yr)": 5,
}

RATING_RANGE = (1, 5)
HIGH_RATING_THRESHOLD = 4.0

SEED_COUNT = 50
SUGGESTION_COUNT = 10
HISTORY_LIMIT = 20
GENRE_COUNT = 10

PLACEHOLDER_POSTER = "https://placehold.co/500x750/171717/FFFFFF?text={title}"
TMDB_POSTER_BASE = "https://image.tmdb.org/t/p/w500"

STREAMING_SEARCH_URLS = {
    "YouTube": "https://www.youtube.com/results?search_query={query}",
    "Netflix": "https://www.netflix.com/search?q={query}",
    "Prime Video": "https://www.primevideo.com/search/ref=atv_nb_sr?phrase={query}&ie=UTF8",
}


def placeholder_poster_url(title):
    """Placeholder poster used when no metadata match exists."""
    return PLACEHOLDER_POSTER.format(title=quote(title or "", safe=""))


def tmdb_poster_url(poster_path):
    """Build a full poster URL from a TMDB poster path, or None."""
    if not poster_path:
        return None
    return f"{TMDB_POSTER_BASE}{poster_path}"


def streaming_search_links(title):
    """
    Build search links on the streaming platforms the family uses.

    Args:
        title: Movie title

    Returns:
        Dict of platform name -> search URL
    """
    query = quote_plus(title or "")
    return {platform: url.format(query=query) for platform, url in STREAMING_SEARCH_URLS.items()}


def family_profile(roster=None, current_year=CURRENT_YEAR):
    """Render the roster as 'Name (age N)' entries for prompts."""
    roster = FAMILY_MEMBERS if roster is None else roster
    return ", ".join(
        f"{member.name} (age {member.age(current_year)})" for member in roster.values()
    )

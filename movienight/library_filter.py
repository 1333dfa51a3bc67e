"""
Library filtering by title search and release era.
"""

from .utils import ERAS

# (label, first year, first year of next era); None means open-ended
ERA_BOUNDS = [
    (ERAS[0], None, 1980),
    (ERAS[1], 1980, 1990),
    (ERAS[2], 1990, 2000),
    (ERAS[3], 2000, 2010),
    (ERAS[4], 2010, None),
]


def era_for_year(year):
    """
    Map a release year to its era label.

    Args:
        year: Release year (int)

    Returns:
        The single era label whose half-open range contains the year
    """
    for label, start, end in ERA_BOUNDS:
        if (start is None or year >= start) and (end is None or year < end):
            return label
    raise ValueError(f"No era for year {year!r}")


def matches_era(year, eras):
    if not eras:
        return True
    if year is None:
        return False
    return era_for_year(year) in eras


def filter_movies(movies, query="", eras=()):
    """
    Filter the library by search text and selected eras.

    With no query and no eras the input comes back unchanged. Otherwise a
    movie is kept when its title contains the query (case-insensitive) and
    its era is one of the selected eras; order is preserved.
    """
    if not query and not eras:
        return movies

    needle = (query or "").lower()
    return [
        movie for movie in movies
        if needle in movie.title.lower() and matches_era(movie.year, eras)
    ]

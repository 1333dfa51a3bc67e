"""
Family rating aggregation: overall and per-group averages.
"""

import pandas as pd

from .utils import FAMILY_MEMBERS, GROUPS


def average(ratings):
    """
    Mean of all present scores.

    Args:
        ratings: Mapping of member name -> score (may be empty or None)

    Returns:
        0 when there are no ratings, otherwise the unrounded mean
    """
    if not ratings:
        return 0
    values = list(ratings.values())
    return sum(values) / len(values)


def family_average(ratings):
    """Average across every member who rated."""
    return average(ratings)


def group_average(ratings, group, roster=None):
    """
    Average of the ratings given by members of one group.

    Members missing from the roster belong to no group and are skipped.
    """
    roster = FAMILY_MEMBERS if roster is None else roster
    if not ratings:
        return 0
    group_ratings = {
        name: score
        for name, score in ratings.items()
        if name in roster and roster[name].group == group
    }
    return average(group_ratings)


def format_average(value):
    return f"{value:.1f}"


def ratings_table(movies, roster=None):
    """
    Build the family scoreboard: one row per movie, one column per member.

    Args:
        movies: Library movies
        roster: Family roster (defaults to FAMILY_MEMBERS)

    Returns:
        DataFrame with title, year, each member's score (NaN when unrated),
        and the family and per-group averages (NaN when nobody rated)
    """
    roster = FAMILY_MEMBERS if roster is None else roster
    columns = ["title", "year", *roster.keys(), "Family", *GROUPS]

    rows = []
    for movie in movies:
        row = {"title": movie.title, "year": movie.year}
        for name in roster:
            row[name] = movie.ratings.get(name)
        row["Family"] = family_average(movie.ratings) or None
        for group in GROUPS:
            row[group] = group_average(movie.ratings, group, roster) or None
        rows.append(row)

    df = pd.DataFrame(rows, columns=columns)
    numeric = [*roster.keys(), "Family", *GROUPS]
    df[numeric] = df[numeric].astype(float)
    return df

"""
Unit tests for utility functions and constants.
"""

import unittest

from movienight.models import FamilyMember
from movienight.utils import (
    ERAS,
    FAMILY_MEMBERS,
    GROUPS,
    INITIAL_GENRES,
    INITIAL_MOODS,
    SEED_FAVORITES,
    WATCHED_OPTIONS,
    family_profile,
    placeholder_poster_url,
    streaming_search_links,
    tmdb_poster_url,
)


class TestUtilsConstants(unittest.TestCase):
    """Test utility constants and configurations."""

    def test_family_roster(self):
        self.assertEqual(list(FAMILY_MEMBERS), ["Kate", "Ryan", "Ellie", "Quinn"])
        for name, member in FAMILY_MEMBERS.items():
            self.assertEqual(member.name, name)
            self.assertIn(member.group, GROUPS)

    def test_five_eras(self):
        self.assertEqual(len(ERAS), 5)
        self.assertEqual(len(set(ERAS)), 5)

    def test_label_lists(self):
        self.assertEqual(len(INITIAL_GENRES), 10)
        self.assertEqual(len(INITIAL_MOODS), 10)
        self.assertIn("The Goonies", SEED_FAVORITES)

    def test_watched_options(self):
        self.assertEqual(list(WATCHED_OPTIONS.values()), [0, 3, 5])


class TestUtilsFunctions(unittest.TestCase):

    def test_placeholder_poster_url(self):
        self.assertEqual(
            placeholder_poster_url("10 Things I Hate About You"),
            "https://placehold.co/500x750/171717/FFFFFF?text=10%20Things%20I%20Hate%20About%20You",
        )

    def test_tmdb_poster_url(self):
        self.assertEqual(tmdb_poster_url("/abc.jpg"), "https://image.tmdb.org/t/p/w500/abc.jpg")
        self.assertIsNone(tmdb_poster_url(None))
        self.assertIsNone(tmdb_poster_url(""))

    def test_streaming_search_links(self):
        links = streaming_search_links("The Goonies")
        self.assertEqual(set(links), {"YouTube", "Netflix", "Prime Video"})
        self.assertEqual(links["Netflix"], "https://www.netflix.com/search?q=The+Goonies")
        self.assertIn("phrase=The+Goonies", links["Prime Video"])

    def test_family_profile(self):
        self.assertEqual(
            family_profile(),
            "Kate (age 47), Ryan (age 47), Ellie (age 14), Quinn (age 11)",
        )
        roster = {"Ann": FamilyMember("Ann", 2000, "Adult")}
        self.assertEqual(family_profile(roster, current_year=2030), "Ann (age 30)")


if __name__ == '__main__':
    unittest.main()

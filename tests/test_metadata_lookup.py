"""
Unit tests for TMDB metadata lookup.
"""

import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from tmdbv3api.exceptions import TMDbException

from movienight.metadata_lookup import MetadataLookup, MovieMetadata, pick_best_match
from movienight.models import MovieDraft


def tmdb_result(movie_id, release_date="", poster_path=None, title="Movie"):
    return SimpleNamespace(id=movie_id, release_date=release_date, poster_path=poster_path, title=title)


class TestPickBestMatch(unittest.TestCase):

    def test_prefers_matching_year(self):
        results = [tmdb_result(1, "1998-07-29"), tmdb_result(2, "1961-06-21")]
        self.assertEqual(pick_best_match(results, 1961).id, 2)

    def test_falls_back_to_first(self):
        results = [tmdb_result(1, "1998-07-29"), tmdb_result(2, "")]
        self.assertEqual(pick_best_match(results, 2005).id, 1)
        self.assertEqual(pick_best_match(results).id, 1)

    def test_no_results(self):
        self.assertIsNone(pick_best_match([]))
        self.assertIsNone(pick_best_match([tmdb_result(None)]))


class TestMetadataLookup(unittest.TestCase):

    def setUp(self):
        self.movie_api = MagicMock()
        self.lookup = MetadataLookup(api_key="key", movie_api=self.movie_api)

    def test_lookup_returns_id_and_poster(self):
        self.movie_api.search.return_value = [tmdb_result(9340, "1985-06-07", "/goonies.jpg")]
        metadata = self.lookup.lookup("The Goonies", 1985)
        self.assertEqual(metadata, MovieMetadata(9340, "https://image.tmdb.org/t/p/w500/goonies.jpg"))
        self.movie_api.search.assert_called_once_with("The Goonies")

    def test_no_match_is_none(self):
        self.movie_api.search.return_value = []
        self.assertIsNone(self.lookup.lookup("Nothing", 2000))

    def test_api_failure_is_treated_as_no_match(self):
        self.movie_api.search.side_effect = TMDbException("Invalid API key")
        self.assertIsNone(self.lookup.lookup("The Goonies", 1985))

    def test_disabled_without_key(self):
        lookup = MetadataLookup(api_key=None)
        self.assertFalse(lookup.enabled)
        self.assertIsNone(lookup.lookup("The Goonies"))

    @patch('movienight.metadata_lookup.Movie')
    @patch('movienight.metadata_lookup.TMDb')
    def test_key_configures_tmdb(self, mock_tmdb, mock_movie):
        lookup = MetadataLookup(api_key="secret")
        self.assertEqual(mock_tmdb.return_value.api_key, "secret")
        self.assertIs(lookup.movie_api, mock_movie.return_value)

    def test_enrich_draft_with_match(self):
        self.movie_api.search.return_value = [tmdb_result(9340, "1985-06-07", "/goonies.jpg")]
        draft = self.lookup.enrich_draft(MovieDraft("The Goonies", 1985))
        self.assertEqual(draft.tmdb_id, 9340)
        self.assertEqual(draft.poster_url, "https://image.tmdb.org/t/p/w500/goonies.jpg")

    def test_enrich_draft_falls_back_to_placeholder(self):
        self.movie_api.search.return_value = []
        draft = self.lookup.enrich_draft(MovieDraft("Unknown Film", 2001))
        self.assertIsNone(draft.tmdb_id)
        self.assertEqual(draft.poster_url, "https://placehold.co/500x750/171717/FFFFFF?text=Unknown%20Film")

    def test_enrich_draft_match_without_poster(self):
        self.movie_api.search.return_value = [tmdb_result(5, "2001-01-01", None)]
        draft = self.lookup.enrich_draft(MovieDraft("Obscure", 2001))
        self.assertEqual(draft.tmdb_id, 5)
        self.assertIn("placehold.co", draft.poster_url)


if __name__ == '__main__':
    unittest.main()

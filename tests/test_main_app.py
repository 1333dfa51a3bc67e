"""
Unit tests for the app's widget helpers.
"""

import unittest
from unittest.mock import MagicMock, patch

from main_app import prime_rating_widget, save_rating
from movienight.errors import ConnectivityError
from movienight.models import Movie


class FakeSessionState(dict):
    """Dict with attribute access, like st.session_state."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError as e:
            raise AttributeError(name) from e

    def __setattr__(self, name, value):
        self[name] = value


class TestRatingWidget(unittest.TestCase):

    def setUp(self):
        self.state = FakeSessionState(error=None)
        patcher = patch('main_app.st.session_state', self.state)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.context = MagicMock()
        self.movie = Movie(id="m1", title="The Goonies", year=1985, ratings={"Kate": 4})

    def test_widget_starts_at_saved_rating(self):
        prime_rating_widget("rating_m1_Kate", 4)
        self.assertEqual(self.state["rating_m1_Kate"], 3)

    def test_unrated_widget_starts_empty(self):
        prime_rating_widget("rating_m1_Ryan", None)
        self.assertNotIn("rating_m1_Ryan", self.state)

    def test_widget_value_is_not_overwritten(self):
        self.state["rating_m1_Kate"] = 1
        prime_rating_widget("rating_m1_Kate", 4)
        self.assertEqual(self.state["rating_m1_Kate"], 1)

    def test_changed_stars_are_saved(self):
        self.state["rating_m1_Kate"] = 4
        save_rating(self.context, self.movie, "Kate", "rating_m1_Kate")
        self.context.store.set_rating.assert_called_once_with(self.movie, "Kate", 5)

    def test_cleared_stars_save_nothing(self):
        self.state["rating_m1_Kate"] = None
        save_rating(self.context, self.movie, "Kate", "rating_m1_Kate")
        self.context.store.set_rating.assert_not_called()

    def test_save_failure_is_shown(self):
        self.context.store.set_rating.side_effect = ConnectivityError("Failed to save ratings.")
        self.state["rating_m1_Kate"] = 2
        save_rating(self.context, self.movie, "Kate", "rating_m1_Kate")
        self.assertEqual(self.state.error, "Failed to save ratings.")


if __name__ == '__main__':
    unittest.main()

"""
Firestore-backed movie library and the app context that owns it.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError, TransportError
from google.cloud import firestore
from google.oauth2.service_account import Credentials

from .config import AppConfig, load_config
from .errors import AuthenticationError, ConnectivityError, ValidationError
from .metadata_lookup import MetadataLookup
from .models import Movie, is_valid_rating
from .recommendation_requests import RecommendationService
from .utils import WATCHED_OPTIONS

logger = logging.getLogger(__name__)

FIRESTORE_SCOPES = ["https://www.googleapis.com/auth/datastore"]
MAX_BATCH_WRITES = 500
LOAD_TIMEOUT_SECONDS = 30


def nested_field(field_path, value):
    """'ratings.Kate', 5 -> {'ratings': {'Kate': 5}}"""
    parts = field_path.split(".")
    if not all(parts):
        raise ValueError(f"Invalid field path: {field_path!r}")
    data = value
    for part in reversed(parts):
        data = {part: data}
    return data


def last_watched_timestamp(option, now=None):
    """
    Convert a 'last watched' choice to a timestamp.

    Args:
        option: One of WATCHED_OPTIONS
        now: Reference time (defaults to the current UTC time)

    Returns:
        timezone-aware datetime
    """
    if option not in WATCHED_OPTIONS:
        raise ValidationError(f"Unknown watch date option: {option}")
    now = now or datetime.now(UTC)
    years_back = WATCHED_OPTIONS[option]
    try:
        return now.replace(year=now.year - years_back)
    except ValueError:
        # Feb 29 in a non-leap target year
        return now.replace(year=now.year - years_back, day=28)


def store_error(error, message=None):
    """
    Map a Firestore or Google sign-in failure to the app's error types.

    Expired or revoked credentials mean the session must be rebuilt; network
    trouble during a token refresh is a connectivity problem like any other.
    """
    if isinstance(error, GoogleAuthError) and not isinstance(error, TransportError):
        return AuthenticationError()
    return ConnectivityError(message)


class _ClosedListener:
    """Stand-in for a listener that never started."""

    is_active = False

    def unsubscribe(self):
        pass


class LibraryStore:
    """
    The family's movie collection in Firestore.

    Writes touch one field at a time (merge) so two people rating the same
    movie at once do not overwrite each other; inserts go through one batch.
    """

    def __init__(self, client, collection_path="movies"):
        self.client = client
        self.collection_path = collection_path
        self.collection = client.collection(collection_path)

    def subscribe(self, on_update):
        """
        Listen for library changes.

        `on_update(movies, error)` receives the full collection on every
        change, or an empty list and an error if listening cannot start.

        Returns:
            Listener handle with `unsubscribe()` and `is_active`; it goes
            inactive when Firestore closes the stream
        """
        def handle_snapshot(docs, changes, read_time):
            on_update([Movie.from_document(doc.id, doc.to_dict()) for doc in docs], None)

        try:
            return self.collection.on_snapshot(handle_snapshot)
        except (GoogleAPIError, GoogleAuthError) as e:
            logger.error("Firestore snapshot error: %s", e)
            on_update([], store_error(e))
            return _ClosedListener()

    def fetch_all(self):
        try:
            return [Movie.from_document(doc.id, doc.to_dict()) for doc in self.collection.stream()]
        except (GoogleAPIError, GoogleAuthError) as e:
            logger.error("Error reading movies: %s", e)
            raise store_error(e) from e

    def merge_field(self, movie_id, field_path, value):
        """Set one field of one movie, leaving every other field alone."""
        try:
            self.collection.document(movie_id).set(nested_field(field_path, value), merge=True)
        except (GoogleAPIError, GoogleAuthError) as e:
            logger.error("Error updating %s on %s: %s", field_path, movie_id, e)
            raise store_error(e, f"Failed to save {field_path.split('.')[0]}.") from e

    def set_rating(self, movie, member, rating):
        if getattr(movie, "is_suggestion", False):
            raise ValidationError("Add this suggestion to your library before rating it.")
        if not is_valid_rating(rating):
            raise ValidationError("Ratings must be a whole number from 1 to 5.")
        self.merge_field(movie.id, f"ratings.{member}", rating)

    def set_review(self, movie, member, text):
        if getattr(movie, "is_suggestion", False):
            raise ValidationError("Add this suggestion to your library before reviewing it.")
        self.merge_field(movie.id, f"reviews.{member}", text)

    def set_last_watched(self, movie, option, now=None):
        if getattr(movie, "is_suggestion", False):
            raise ValidationError("Add this suggestion to your library before marking it watched.")
        self.merge_field(movie.id, "lastWatched", last_watched_timestamp(option, now))

    def batch_insert(self, drafts):
        """
        Insert new movies in a single atomic batch.

        Returns:
            List of the new document ids
        """
        drafts = list(drafts)
        if not drafts:
            return []
        if len(drafts) > MAX_BATCH_WRITES:
            raise ValidationError(f"Cannot add more than {MAX_BATCH_WRITES} movies at once.")

        batch = self.client.batch()
        ids = []
        for draft in drafts:
            doc_ref = self.collection.document()
            batch.set(doc_ref, {**draft.to_document(), "createdAt": firestore.SERVER_TIMESTAMP})
            ids.append(doc_ref.id)
        try:
            batch.commit()
        except (GoogleAPIError, GoogleAuthError) as e:
            logger.error("Error writing %d movies to Firestore: %s", len(drafts), e)
            raise store_error(e, "Could not save the generated movies to the database.") from e
        logger.info("Inserted %d movies into %s", len(ids), self.collection_path)
        return ids


class LibrarySubscription:
    """
    Keeps the latest library snapshot from a live subscription.

    Snapshots arrive on Firestore's listener thread; each one replaces the
    previous. After an error the last good snapshot stays available.

    Firestore closes a broken listen stream without calling back, so `error`
    also reports a listener that has gone inactive, or one that has not
    delivered a first snapshot within `load_timeout` seconds.
    """

    def __init__(self, store, load_timeout=LOAD_TIMEOUT_SECONDS, clock=time.monotonic):
        self.store = store
        self.load_timeout = load_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._movies = []
        self._error = None
        self._loaded = False
        self._listener = None
        self._started_at = None

    def start(self):
        started_at = self._clock()
        listener = self.store.subscribe(self._on_update)
        with self._lock:
            self._listener = listener
            self._started_at = started_at
        return self

    def stop(self):
        with self._lock:
            listener, self._listener = self._listener, None
        if listener is not None:
            listener.unsubscribe()

    def resubscribe(self):
        self.stop()
        with self._lock:
            self._error = None
        return self.start()

    def _on_update(self, movies, error):
        with self._lock:
            if error is not None:
                self._error = error
                return
            self._movies = list(movies)
            self._error = None
            self._loaded = True

    def _check_listener(self):
        # Caller holds the lock.
        if self._error is not None or self._listener is None:
            return
        if not self._listener.is_active:
            logger.error("Firestore listener for %s closed", self.store.collection_path)
            self._error = ConnectivityError()
        elif not self._loaded and self._clock() - self._started_at > self.load_timeout:
            logger.error("No snapshot from %s after %ss", self.store.collection_path, self.load_timeout)
            self._error = ConnectivityError("Timed out loading your movie library.")

    @property
    def movies(self):
        with self._lock:
            return list(self._movies)

    @property
    def error(self):
        with self._lock:
            self._check_listener()
            return self._error

    @property
    def loaded(self):
        with self._lock:
            return self._loaded


def connect_store(config, client_factory=None, attempts=2):
    """
    Open the Firestore library, retrying a failed sign-in once.

    Raises:
        AuthenticationError: no client could be created
    """
    client_factory = client_factory or _firestore_client
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return LibraryStore(client_factory(config), config.movies_collection)
        except (GoogleAuthError, ValueError) as e:
            last_error = e
            logger.warning("Firestore sign-in attempt %d failed: %s", attempt, e)
    raise AuthenticationError() from last_error


def _firestore_client(config):
    credentials = None
    if config.service_account_info:
        credentials = Credentials.from_service_account_info(config.service_account_info, scopes=FIRESTORE_SCOPES)
    project = config.firestore_project_id or (config.service_account_info or {}).get("project_id")
    return firestore.Client(project=project, credentials=credentials)


@dataclass
class AppContext:
    """Everything that talks to the outside world, built once at startup."""
    config: AppConfig
    store: LibraryStore
    lookup: MetadataLookup
    recommender: RecommendationService


def create_app_context(config=None, client_factory=None):
    config = config or load_config()
    return AppContext(
        config=config,
        store=connect_store(config, client_factory=client_factory),
        lookup=MetadataLookup(config.tmdb_api_key),
        recommender=RecommendationService(config),
    )

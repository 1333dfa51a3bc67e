"""Application configuration"""

import os
from dataclasses import dataclass, field

import streamlit as st
from streamlit.errors import StreamlitAPIException

from .errors import ServiceNotConfiguredError

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_GEMINI_TIMEOUT = 30.0
DEFAULT_MOVIES_COLLECTION = "movies"


def _read_secret(key):
    """Look up a key in Streamlit secrets, tolerating a missing secrets file."""
    try:
        if key in st.secrets:
            return st.secrets[key]
    except (FileNotFoundError, StreamlitAPIException):
        pass
    return None


def get_config_value(key: str, default=None):
    """
    Get configuration value from environment or Streamlit secrets.

    Priority:
    1. Environment variable
    2. st.secrets[key]
    3. Default value

    Args:
        key: Configuration key name
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    value = os.getenv(key)
    if value:
        return value

    value = _read_secret(key)
    if value:
        return value

    return default


def get_service_account_info() -> dict | None:
    """
    Get the GCP service account used for the movie store.

    Reads the `gcp_service_account` secrets table, or a JSON file named by
    GOOGLE_APPLICATION_CREDENTIALS (handled by google-auth itself, so None is
    returned in that case).
    """
    section = _read_secret("gcp_service_account")
    if not section:
        return None

    info = dict(section)
    # TOML secrets often carry the key with literal \n sequences
    private_key = info.get("private_key", "")
    if "\\n" in private_key:
        private_key = private_key.replace("\\n", "\n")
    private_key = private_key.strip()
    if private_key.startswith('"') and private_key.endswith('"'):
        private_key = private_key[1:-1]
    info["private_key"] = private_key.strip()
    return info


def _as_float(value, default):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class AppConfig:
    gemini_api_key: str | None = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_timeout: float = DEFAULT_GEMINI_TIMEOUT
    tmdb_api_key: str | None = None
    firestore_project_id: str | None = None
    movies_collection: str = DEFAULT_MOVIES_COLLECTION
    service_account_info: dict | None = field(default=None, repr=False)

    def require(self, key: str) -> str:
        """Return a required setting or raise ServiceNotConfiguredError."""
        value = getattr(self, key)
        if not value:
            raise ServiceNotConfiguredError(
                f"The service is not configured: {key.upper()} is missing."
            )
        return value


def load_config() -> AppConfig:
    """Read every setting the app needs, once, at startup."""
    return AppConfig(
        gemini_api_key=get_config_value("GEMINI_API_KEY"),
        gemini_model=get_config_value("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        gemini_timeout=_as_float(get_config_value("GEMINI_TIMEOUT"), DEFAULT_GEMINI_TIMEOUT),
        tmdb_api_key=get_config_value("TMDB_API_KEY"),
        firestore_project_id=get_config_value("FIRESTORE_PROJECT_ID"),
        movies_collection=get_config_value("MOVIES_COLLECTION", DEFAULT_MOVIES_COLLECTION),
        service_account_info=get_service_account_info(),
    )

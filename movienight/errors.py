"""
Error types surfaced to the family in the app.
"""


class MovieNightError(Exception):
    """Base class; `user_message` is what the UI shows."""

    default_message = "Something went wrong."

    def __init__(self, user_message=None, *args):
        self.user_message = user_message or self.default_message
        super().__init__(self.user_message, *args)


class ConnectivityError(MovieNightError):
    """The movie store could not be reached or a write failed."""
    default_message = "Could not connect to the movie database. Check your Firestore config and security rules."


class AuthenticationError(MovieNightError):
    """No store session could be established."""
    default_message = "Could not authenticate with the service. Please refresh the page."


class ExternalServiceError(MovieNightError):
    """The suggestion or metadata service failed or returned junk."""
    default_message = "The suggestion service failed. Please try again later."


class ServiceNotConfiguredError(ExternalServiceError):
    """A required API key or project id is missing."""
    default_message = "This service is not configured."


class ValidationError(MovieNightError):
    """A user action's precondition was not met."""
    default_message = "That action is not possible right now."


class InsufficientSignalError(ValidationError):
    default_message = "Please rate some movies 4 stars or higher to generate creative genres."

"""Error taxonomy shared by the catalog client, backend handles and repositories.

Every error carries a human-readable ``message``. Repositories never let these
escape; they come back wrapped in a ``Failure``.
"""


class FilmHubError(Exception):
    """Base class for all FilmHub errors."""

    default_message = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FilmHubError):
    """Local pre-flight check failed; no I/O was attempted."""
    default_message = "Invalid input"


class EmptyQuery(ValidationError):
    default_message = "Search query cannot be empty"


class InvalidCredentials(FilmHubError):
    default_message = "Incorrect email or password"


class EmailAlreadyInUse(FilmHubError):
    default_message = "Email is already in use"


class NotAuthenticated(FilmHubError):
    default_message = "User is not signed in"


class PermissionDenied(FilmHubError):
    default_message = "You do not have permission to do that"


class NotFound(FilmHubError):
    default_message = "Resource not found"


class CatalogError(FilmHubError):
    """Movie catalog request failed (transport error or non-success status)."""
    default_message = "Could not load movies"


class NetworkError(FilmHubError):
    """Backend could not be reached."""
    default_message = "Connection error"


class DecodeError(FilmHubError):
    """A backend document does not match its record schema."""
    default_message = "Malformed document"

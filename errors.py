class GenreTrackerError(Exception):
    """Base class for errors raised by the tracker."""


class AuthError(GenreTrackerError):
    """Missing or rejected credentials, or a failed profile lookup."""


class RemoteError(GenreTrackerError):
    """Spotify answered with an error status, failed in transit or sent a malformed payload."""


class StorageError(GenreTrackerError):
    """Reading from or writing to the database failed."""

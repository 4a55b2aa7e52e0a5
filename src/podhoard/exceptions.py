"""Custom exceptions for the podhoard application.

This module defines all custom exception classes used throughout the
application, organized by functional area and providing structured
error information for better debugging and error handling.
"""


class PodhoardError(Exception):
    """Base class for application-specific errors."""


class ConfigLoadError(PodhoardError):
    """Raised when a configuration file fails to load.

    Attributes:
        config_file: Path to the configuration file that failed to load.
    """

    def __init__(
        self,
        message: str,
        config_file: str | None = None,
    ):
        super().__init__(message)
        self.config_file = config_file


# --- Persistence ---------------------------------------------------------


class DatabaseOperationError(PodhoardError):
    """Raised when a database operation fails.

    Attributes:
        feed_id: The feed identifier associated with the error.
        entry_id: The entry identifier associated with the error.
    """

    def __init__(
        self,
        message: str,
        feed_id: str | None = None,
        entry_id: str | None = None,
    ):
        super().__init__(message)
        self.feed_id = feed_id
        self.entry_id = entry_id


class NotFoundError(PodhoardError):
    """Raised when a record is not found in the database."""


class FeedNotFoundError(NotFoundError):
    """Raised when a specific feed is not found when expected.

    Attributes:
        feed_id: The feed identifier associated with the error.
    """

    def __init__(self, message: str, feed_id: str | None = None):
        super().__init__(message)
        self.feed_id = feed_id


class EntryNotFoundError(NotFoundError):
    """Raised when a specific entry is not found when expected.

    Attributes:
        feed_id: The feed identifier associated with the error.
        entry_id: The entry identifier associated with the error.
    """

    def __init__(
        self,
        message: str,
        feed_id: str | None = None,
        entry_id: str | None = None,
    ):
        super().__init__(message)
        self.feed_id = feed_id
        self.entry_id = entry_id


class DuplicateFeedError(PodhoardError):
    """Raised when subscribing to a source URL that is already subscribed.

    Attributes:
        feed_id: The identifier of the existing feed.
        url: The duplicated source URL.
    """

    def __init__(self, message: str, feed_id: str | None = None, url: str | None = None):
        super().__init__(message)
        self.feed_id = feed_id
        self.url = url


# --- Network -------------------------------------------------------------


class InvalidUrlError(PodhoardError):
    """Raised when a remote URL is not an http(s) URL.

    Attributes:
        url: The rejected URL.
    """

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class FetchError(PodhoardError):
    """Raised when a feed document cannot be fetched or parsed.

    Attributes:
        url: The feed URL associated with the error.
        feed_id: The feed identifier, when the feed is already known.
        status_code: The HTTP status code, when a response was received.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        feed_id: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.feed_id = feed_id
        self.status_code = status_code


class DownloadError(PodhoardError):
    """Raised when an artifact transfer fails.

    Attributes:
        url: The remote artifact URL.
        feed_id: The feed identifier associated with the error.
        entry_id: The entry identifier associated with the error.
        status_code: The HTTP status code, when a response was received.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        feed_id: str | None = None,
        entry_id: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.feed_id = feed_id
        self.entry_id = entry_id
        self.status_code = status_code


# --- File system ---------------------------------------------------------


class PathValidationError(PodhoardError):
    """Raised when a computed path would resolve outside the storage root.

    Attributes:
        path: The offending path.
        root: The directory the path was required to stay within.
    """

    def __init__(self, message: str, path: str | None = None, root: str | None = None):
        super().__init__(message)
        self.path = path
        self.root = root


class FileOperationError(PodhoardError):
    """Raised when a file system operation fails.

    Attributes:
        feed_id: The feed identifier associated with the error.
        entry_id: The entry identifier associated with the error.
        file_name: The file name associated with the error.
    """

    def __init__(
        self,
        message: str,
        feed_id: str | None = None,
        entry_id: str | None = None,
        file_name: str | None = None,
    ):
        super().__init__(message)
        self.feed_id = feed_id
        self.entry_id = entry_id
        self.file_name = file_name


class BackupError(PodhoardError):
    """Raised when a database backup cannot be written.

    Attributes:
        file_name: The backup archive associated with the error.
    """

    def __init__(self, message: str, file_name: str | None = None):
        super().__init__(message)
        self.file_name = file_name

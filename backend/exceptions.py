"""Error taxonomy shared by the services, the HTTP layer and the CLI."""


class FlashdeckError(Exception):
    """Base exception for all Flashdeck errors."""


class AuthenticationRequired(FlashdeckError):
    """Raised when an operation needs a user and none is available."""

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class NotFoundError(FlashdeckError):
    """Raised when a row the caller must own or see does not exist."""


class SearchError(FlashdeckError):
    """Raised when the datastore fails during a search."""

    def __init__(self, message: str = "Failed to search") -> None:
        super().__init__(message)

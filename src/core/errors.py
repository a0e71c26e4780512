"""
Error taxonomy for the records service.
"""


class RecordsError(Exception):
    """Base class for all records service errors."""
    pass


class RecordValidationError(RecordsError):
    """Payload rejected before any write. Names the offending field."""

    def __init__(self, field: str, message: str, errors=None):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message
        # Every (field, message) pair found, first one mirrored above
        self.errors = errors or [(field, message)]


class ConflictError(RecordsError):
    """Uniqueness violation (duplicate sheetId)."""
    pass


class NotFoundError(RecordsError):
    """Delete or update target does not exist."""
    pass


class StorageError(RecordsError):
    """Storage backend unavailable or failed."""
    pass


class UpstreamError(RecordsError):
    """Email relay or spreadsheet service failure."""
    pass


class AuthenticationError(RecordsError):
    """Unknown station or bad station secret."""
    pass

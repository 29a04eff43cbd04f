"""Exception hierarchy for quotesync."""


class QuoteSyncError(Exception):
    """Base exception for all quotesync errors."""


class InvalidQuoteError(QuoteSyncError):
    """A quote is missing its text or category."""


class RemoteError(QuoteSyncError):
    """HTTP-level failure talking to the remote feed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class RemoteUnavailable(RemoteError):
    """Fetching the remote feed failed (network error or non-2xx)."""


class PushFailed(RemoteError):
    """Uploading a quote to the remote feed failed."""


class ImportRejected(QuoteSyncError):
    """An import document was rejected; the collection is left unchanged."""

    user_message = "Import failed."


class MalformedImport(ImportRejected):
    """The import document could not be read or is not valid JSON."""

    user_message = "Error reading JSON file."


class InvalidImportShape(ImportRejected):
    """The import document is valid JSON but not an array of quotes."""

    user_message = "Invalid JSON format."


class CorruptPersistedState(QuoteSyncError):
    """The persisted collection record could not be decoded."""

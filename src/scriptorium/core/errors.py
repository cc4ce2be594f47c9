class ScriptoriumError(Exception):
    """Base error for all user-facing Scriptorium exceptions."""


class ConfigurationError(ScriptoriumError):
    """Raised when configuration is invalid or incomplete."""


class ProjectNotInitializedError(ScriptoriumError):
    """Raised when .scriptorium metadata is missing."""


class FetchError(ScriptoriumError):
    """Raised when a resource cannot be downloaded."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class OfficeExportError(FetchError):
    """Raised when an office-suite document cannot be exported as PDF."""


class BackendError(ScriptoriumError):
    """Raised when the OCR backend rejects a request."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class BackendProtocolError(BackendError):
    """Raised when an OCR backend response lacks a required field."""


class EntryNotFoundError(ScriptoriumError):
    """Raised when no transcription exists for a digest."""


class ArtifactMissingError(ScriptoriumError):
    """Raised when persisted transcription files cannot be located."""


class ContentDecodeError(ScriptoriumError):
    """Raised when downloaded image bytes cannot be decoded for OCR."""


class InvalidDigestError(ScriptoriumError):
    """Raised when a digest is not a lowercase hex SHA-256 string."""

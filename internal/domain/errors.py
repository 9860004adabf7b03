"""
Domain-specific exceptions.

Error taxonomy of the localization sync. Only setup-level failures are
allowed to escape a batch run; everything else is turned into a counted
per-item outcome by the caller.
"""
from typing import Any, Optional


class DomainError(Exception):
    """Base exception for domain errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize domain error.

        Args:
            message: Error message describing the issue.
        """
        self.message = message
        super().__init__(self.message)


class DomainValidationError(DomainError):
    """Exception raised when domain validation fails."""
    pass


class RemoteError(DomainError):
    """
    Exception raised when the CMS backend fails or answers with garbage.

    Covers transport errors, non-2xx statuses, GraphQL ``errors`` and
    responses missing the expected data.
    """

    def __init__(
        self,
        message: str,
        payload: Any = None,
        status_code: Optional[int] = None,
    ) -> None:
        """
        Initialize remote error.

        Args:
            message: Error message.
            payload: Raw upstream error payload (GraphQL errors or body).
            status_code: HTTP status code, if the request got that far.
        """
        super().__init__(message)
        self.payload = payload
        self.status_code = status_code


class DuplicateConflict(RemoteError):
    """
    Exception raised when the backend reports the record already exists.

    Callers treat it as success-equivalent ("already exists").
    """

    def __init__(
        self,
        message: str,
        existing_id: Optional[str] = None,
        payload: Any = None,
        status_code: Optional[int] = None,
    ) -> None:
        """
        Initialize duplicate conflict.

        Args:
            message: Error message.
            existing_id: ID of the existing record when the backend reports it.
            payload: Raw upstream error payload.
            status_code: HTTP status code.
        """
        super().__init__(message, payload=payload, status_code=status_code)
        self.existing_id = existing_id


class TranslationError(DomainError):
    """Exception raised when a text cannot be translated."""

    def __init__(self, text: str, target_locale: str, reason: str) -> None:
        """
        Initialize translation error.

        Args:
            text: Source text.
            target_locale: Requested target locale.
            reason: The reason for the failure.
        """
        super().__init__(
            f"Translation of '{text}' to '{target_locale}' failed: {reason}"
        )
        self.text = text
        self.target_locale = target_locale
        self.reason = reason


class MissingDependencyError(DomainError):
    """Exception raised when a required localization peer does not exist yet."""

    def __init__(self, kind: str, key: Any, locale: str) -> None:
        """
        Initialize missing dependency error.

        Args:
            kind: Entity kind of the missing peer.
            key: ID or natural key of the entity whose peer is missing.
            locale: Locale the peer was expected in.
        """
        super().__init__(f"{kind} {key} has no localization in '{locale}'")
        self.kind = kind
        self.key = key
        self.locale = locale


class MediaUploadError(DomainError):
    """Exception raised when a product media archive cannot be processed."""

    def __init__(self, archive_url: str, reason: str) -> None:
        """
        Initialize media upload error.

        Args:
            archive_url: URL of the media archive.
            reason: The reason for the failure.
        """
        super().__init__(f"Media upload failed for {archive_url}: {reason}")
        self.archive_url = archive_url
        self.reason = reason

"""
Custom Exception Classes for the Site CMS

This module defines the typed errors raised by the publication engine,
the category catalog and the guestbook. Each error carries a stable
machine-readable ``error_code`` so clients can branch on it, and an HTTP
status that the exception handlers use when rendering the response.
"""

import enum
from typing import Any

from fastapi import status

from sitecms.i18n.languages import language_name


class ErrorCode(str, enum.Enum):
    """Machine-readable error codes exposed to API clients."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    CATEGORY_REQUIRED = "CATEGORY_REQUIRED"
    CATEGORY_INVALID = "CATEGORY_INVALID"

    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    TRANSLATION_NOT_AVAILABLE = "TRANSLATION_NOT_AVAILABLE"

    TRANSLATION_FAILED = "TRANSLATION_FAILED"

    CONFLICT = "CONFLICT"
    SLUG_CONFLICT = "SLUG_CONFLICT"
    CATEGORY_IN_USE = "CATEGORY_IN_USE"

    STORAGE_ERROR = "STORAGE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class CMSError(Exception):
    """Base exception class for all CMS-related exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Validation Exceptions
# ============================================================================


class ValidationError(CMSError):
    """Raised when input is malformed or semantically invalid"""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: dict[str, Any] | None = None,
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=error_code,
            details=error_details,
        )


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class NotFoundError(CMSError):
    """Base class for resource not found errors"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Any | None = None,
        message: str | None = None,
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ):
        if message is None:
            message = f"{resource_type} not found"
            if resource_id is not None:
                message = f"{resource_type} with id '{resource_id}' not found"
        error_details = {"resource_type": resource_type, "resource_id": resource_id}
        error_details.update(details or {})
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=error_code,
            details=error_details,
        )


class PublicationNotFoundError(NotFoundError):
    """Raised when a publication is not found"""

    def __init__(self, publication_id: Any | None = None):
        super().__init__(resource_type="Publication", resource_id=publication_id)


class CategoryNotFoundError(NotFoundError):
    """Raised when a category is not found"""

    def __init__(self, category_id: Any | None = None):
        super().__init__(resource_type="Category", resource_id=category_id)


class GuestBookNotFoundError(NotFoundError):
    """Raised when a guestbook entry is not found"""

    def __init__(self, entry_id: Any | None = None):
        super().__init__(resource_type="GuestBook", resource_id=entry_id)


class TranslationNotAvailableError(NotFoundError):
    """Raised when a publication exists but has no row for the requested language"""

    def __init__(self, language: str, publication_id: Any | None = None):
        super().__init__(
            resource_type="PublicationTranslation",
            resource_id=publication_id,
            message=f"The {language_name(language)} version of this publication is not available yet",
            error_code=ErrorCode.TRANSLATION_NOT_AVAILABLE,
            details={"language": language},
        )
        self.language = language


# ============================================================================
# External Service Exceptions
# ============================================================================


class TranslationError(CMSError):
    """Raised when the translation provider cannot produce usable output"""

    def __init__(self, target_language: str, upstream: str):
        super().__init__(
            message=f"Failed to translate publication to '{target_language}': {upstream}",
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code=ErrorCode.TRANSLATION_FAILED,
            details={"target_language": target_language, "upstream": upstream},
        )
        self.target_language = target_language
        self.upstream = upstream


# ============================================================================
# Conflict & Storage Exceptions
# ============================================================================


class ConflictError(CMSError):
    """Raised when a uniqueness or referential invariant would be violated"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFLICT,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            details=details or {},
        )


class StorageError(CMSError):
    """Raised when the persistence layer fails unexpectedly"""

    def __init__(self, message: str = "A database error occurred", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code=ErrorCode.STORAGE_ERROR,
            details=details,
        )

"""
Chronicle exception hierarchy.

All chronicle exceptions inherit from ChronicleError, so callers can catch
library-level errors while still telling specific failure modes apart.
"""


class ChronicleError(Exception):
    """Base exception class for all chronicle errors."""


class ConfigurationError(ChronicleError):
    """Raised for configuration errors (missing keys, invalid values)."""


class StoreError(ChronicleError):
    """Raised for document store failures."""


class DocumentNotFoundError(StoreError, KeyError):
    """Raised when an update targets a document that doesn't exist."""


class TransactionConflictError(StoreError):
    """Raised when a transaction still conflicts after all retry attempts."""


class BatchLimitError(StoreError):
    """Raised when a batched write exceeds the provider's operation limit."""


class EntryValidationError(ChronicleError):
    """Raised when a manually added entry fails validation."""


class ImportFormatError(ChronicleError):
    """Raised for unusable batch import input."""


class EmptyImportError(ImportFormatError):
    """Raised when an import file yields no valid records."""


class ClassifierError(ChronicleError):
    """Raised when a mood classification batch fails."""


class ClassifierRateLimitError(ClassifierError):
    """Raised when the classifier signals rate limiting (HTTP 429)."""


class ClassifierKeyError(ClassifierError):
    """Raised when no API key is available; the request is never sent."""

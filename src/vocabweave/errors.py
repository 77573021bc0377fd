"""Exception types shared across VocabWeave."""


class VocabWeaveError(Exception):
    """Base exception for all custom errors."""


class ProviderError(VocabWeaveError, ConnectionError):
    """Raised when the translation provider is unreachable or answers with a failure."""


class StorageError(VocabWeaveError):
    """Raised when the key-value store cannot be read or written."""

"""Exceptions raised by the prompt builder core."""

from typing import Any, Optional


class PromptBuilderError(Exception):
    """Base exception for prompt builder errors."""
    pass


class ImportParseError(PromptBuilderError):
    """Raised when an imported file is not a usable JSON prompt object."""
    pass


class LibraryDeserializeError(PromptBuilderError):
    """Raised internally when the persisted library blob cannot be decoded."""
    pass


class MissingCredentialError(PromptBuilderError):
    """Raised before any network call when the provider has no credential."""
    pass


class ProviderError(PromptBuilderError):
    """Raised when the generation provider returns a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class BusyError(PromptBuilderError):
    """Raised when a generation is requested while another is in flight."""
    pass


class GenerationTimeoutError(PromptBuilderError, TimeoutError):
    """Raised when the provider does not answer within the configured timeout."""

    retryable = True

"""Exception types raised inside the search pipeline."""

from __future__ import annotations


class SourceFinderError(Exception):
    """Base class for pipeline errors."""


class RequestValidationError(SourceFinderError):
    """The caller sent an unusable request (e.g. an empty query)."""


class ProviderError(SourceFinderError):
    """A discovery provider could not produce candidates."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class CredentialsMissing(ProviderError):
    pass


class RateLimited(ProviderError):
    pass


class FetchError(SourceFinderError):
    """A candidate page could not be retrieved."""


class FetchTimeout(FetchError):
    pass

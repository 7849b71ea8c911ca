"""Exceptions raised inside tools; each tool converts them to an error-shaped result."""


class ToolError(Exception):
    """Base class for tool failures."""


class InvalidURLError(ToolError):
    """URL failed syntactic validation; no request was made."""


class FetchError(ToolError):
    """Page could not be fetched (non-2xx status or network failure)."""


class FetchTimeoutError(FetchError):
    pass


class SearchProviderError(ToolError):
    """Search backend call failed."""


class SearchConfigurationError(SearchProviderError):
    """Search backend is not configured (e.g. missing API key)."""

class AppError(Exception):
    """Base application error for the external address watcher."""


class LookupProviderError(AppError):
    """Base error for address lookup provider failures."""


class UpstreamServiceError(LookupProviderError):
    """Raised when the upstream lookup provider fails or is unreachable."""


class MalformedResponseError(LookupProviderError):
    """Raised when the provider answers with a body we cannot interpret."""


class AssetFetchError(AppError):
    """Raised when a map or flag image cannot be downloaded."""

from typing import Optional


class DiscogsProxyError(Exception):
    """Base error for the proxy. Carries the HTTP status the caller should see."""

    status = 500

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class ConfigurationError(DiscogsProxyError):
    """Required app settings are missing or unresolved."""

    status = 500


class ValidationError(DiscogsProxyError):
    """Caller input rejected before anything is sent upstream."""

    status = 400


class UpstreamError(DiscogsProxyError):
    """Discogs answered with a non-2xx status (after retries, where retryable)."""

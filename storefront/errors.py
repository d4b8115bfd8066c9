"""
Application Errors

Errors that carry an HTTP status so routers can map them to responses.
Store failures (Redis, Meilisearch) are not wrapped; they propagate as
raised by their client libraries.
"""


class AppError(Exception):
    """Base error with an HTTP status code."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(AppError):
    """Requested upstream entity does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class UpstreamError(AppError):
    """Shopify API request failed."""

    status_code = 502


class FetchFailed(UpstreamError):
    """An upstream page was missing its expected top-level data."""

    def __init__(self, message: str = "Failed to fetch products for Meilisearch sync"):
        super().__init__(message)

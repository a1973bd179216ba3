"""HTTP-aware errors raised by the search pipeline.

Each error carries its own status code so FastAPI renders it directly as
``{"detail": ...}`` without a custom handler.
"""

from fastapi import HTTPException


class TrekkingSearchError(HTTPException):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)

    def __str__(self) -> str:
        return self.detail


class ServiceUnavailableError(TrekkingSearchError):
    status_code = 503


class NotFoundError(TrekkingSearchError):
    status_code = 404


class RateLimitedError(TrekkingSearchError):
    status_code = 429


class UpstreamAuthError(TrekkingSearchError):
    status_code = 403


class GatewayTimeoutError(TrekkingSearchError):
    status_code = 504


class UpstreamError(TrekkingSearchError):
    status_code = 500

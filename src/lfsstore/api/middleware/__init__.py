"""lfsstore API middleware package."""

from lfsstore.api.middleware.request_id import RequestIdMiddleware

__all__ = ["RequestIdMiddleware"]

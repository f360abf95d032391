"""Translate service-layer failures into HTTP responses."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, status

from ..services.errors import (
    FeedbackServiceError,
    Forbidden,
    NotFound,
    StoreUnavailable,
    ThreadClosed,
    ValidationError,
)

_STATUS_BY_ERROR: tuple[tuple[type[FeedbackServiceError], int], ...] = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (ThreadClosed, status.HTTP_409_CONFLICT),
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(exc: FeedbackServiceError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors)
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@contextmanager
def service_errors() -> Iterator[None]:
    try:
        yield
    except FeedbackServiceError as exc:
        raise to_http_exception(exc) from exc


__all__ = ["service_errors", "to_http_exception"]

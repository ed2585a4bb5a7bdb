"""DRF exception handler for scheduling errors."""

from __future__ import annotations

import logging

from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from shared.domain.exceptions import (
    NotFoundError,
    PolicyViolation,
    SchedulingError,
    SlotConflict,
    TransientStoreError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (SlotConflict, status.HTTP_409_CONFLICT),
    (PolicyViolation, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (TransientStoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: SchedulingError) -> int:
    for error_class, http_status in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def scheduling_exception_handler(exc, context):  # type: ignore
    """Turn SchedulingError into ``{"code", "detail", "details"}``."""

    if isinstance(exc, SchedulingError):
        http_status = status_for(exc)
        view = context.get("view")
        logger.warning(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}"
        )
        headers = {"Retry-After": "1"} if isinstance(exc, TransientStoreError) else None
        return Response(exc.to_dict(), status=http_status, headers=headers)
    return drf_exception_handler(exc, context)

"""DRF exception handler for domain errors."""

from __future__ import annotations

import logging

from django.db import DatabaseError  # type: ignore
from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from shared.domain.exceptions import DomainError, InternalError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Something went wrong, please try again later."

WRAPPED_KINDS = {
    status.HTTP_400_BAD_REQUEST: ValidationError.kind,
    status.HTTP_404_NOT_FOUND: NotFoundError.kind,
}


def domain_exception_handler(exc, context):  # type: ignore
    """Render ``DomainError`` as ``{"kind": ..., "detail": ...}``.

    Server-side kinds (5xx) hide their message from the client and log the
    cause instead. Everything else falls through to DRF's default handler.
    """
    if isinstance(exc, DatabaseError):
        logger.error("Database error while handling request", exc_info=exc)
        exc = InternalError()

    if isinstance(exc, DomainError):
        payload = exc.to_dict()
        if exc.http_status >= 500:
            logger.error(
                "%s: %s", exc.kind, exc.message,
                exc_info=getattr(exc, "cause", None) or exc.__cause__ or exc,
            )
            payload["detail"] = GENERIC_SERVER_ERROR
        return Response(payload, status=exc.http_status)

    response = exception_handler(exc, context)
    if response is not None and response.status_code in WRAPPED_KINDS:
        detail = response.data
        if isinstance(detail, dict) and set(detail) == {"detail"}:
            detail = detail["detail"]
        response.data = {"kind": WRAPPED_KINDS[response.status_code], "detail": detail}
    return response

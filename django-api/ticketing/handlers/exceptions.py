"""Map domain errors to HTTP responses without leaking internals."""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from ticketing.domain.errors import (
    ConflictError,
    DomainError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

STATUS_BY_CATEGORY = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
)


def domain_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        for category, http_status in STATUS_BY_CATEGORY:
            if isinstance(exc, category):
                break
        else:
            http_status = status.HTTP_400_BAD_REQUEST
        return Response({"code": exc.code.value, "message": exc.message}, status=http_status)
    return drf_exception_handler(exc, context)

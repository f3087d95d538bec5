"""
Translate domain errors raised by the service layer into API responses.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.accounts.exceptions import (
    ClubError,
    DuplicateEmail,
    DuplicateIdentity,
    MemberNotFound,
)
from apps.billing.exceptions import PaymentRejected

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (MemberNotFound, status.HTTP_404_NOT_FOUND),
    (DuplicateIdentity, status.HTTP_409_CONFLICT),
    (DuplicateEmail, status.HTTP_409_CONFLICT),
    (PaymentRejected, status.HTTP_402_PAYMENT_REQUIRED),
)


def status_for(error):
    for error_class, code in STATUS_BY_ERROR:
        if isinstance(error, error_class):
            return code
    return status.HTTP_400_BAD_REQUEST


def error_response(error):
    """
    ``{"error", "code", "field"}`` body; ``errors`` is added when one pass
    of validation found more than one problem.
    """
    body = error.as_dict()
    if len(error.errors) > 1:
        body['errors'] = [e.as_dict() for e in error.errors]
    return Response(body, status=status_for(error))


def club_exception_handler(exc, context):
    if isinstance(exc, ClubError):
        view = context.get('view')
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'API'}: {exc.message}"
        )
        return error_response(exc)
    return exception_handler(exc, context)

import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from utils.responses import envelope

logger = logging.getLogger(__name__)

GENERIC_ERROR = 'An internal error occurred. Please try again later.'


def api_exception_handler(exc, context):
    """
    DRF ``EXCEPTION_HANDLER`` that renders every error as
    ``{success: false, message, data}``.

    Validation errors keep their field detail in ``data``. Anything DRF does
    not know how to render is logged and answered with a generic 500 so no
    storage detail reaches the client.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception("Unhandled error in %s", view.__class__.__name__ if view else 'view', exc_info=exc)
        return Response(envelope(message=GENERIC_ERROR, success=False),
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if response.status_code >= 500:
        logger.error("Server error %s: %s", response.status_code, exc)

    data = None
    if isinstance(exc, exceptions.ValidationError):
        data = response.data
    response.data = envelope(data=data, message=_first_message(exc), success=False)
    return response


def _first_message(exc):
    if isinstance(exc, Http404):
        return 'Not found.'
    if isinstance(exc, PermissionDenied):
        return 'You do not have permission to perform this action.'
    if not isinstance(exc, exceptions.APIException):
        return str(exc)
    return _flatten(exc.detail)


def _flatten(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _flatten(value)
        return ''
    if isinstance(detail, (list, tuple)):
        return _flatten(detail[0]) if detail else ''
    return str(detail)

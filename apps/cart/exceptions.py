"""
Errors raised by the cart business object.

All of them are DRF ``APIException`` subclasses so a view only has to let
them propagate; ``utils.exceptions.api_exception_handler`` renders them.
"""

from rest_framework import exceptions, status


class AuthError(exceptions.NotAuthenticated):
    default_detail = 'Authentication credentials were not provided.'


class ValidationError(exceptions.ValidationError):
    pass


class NotFoundError(exceptions.NotFound):
    default_detail = 'Not found.'


class StockError(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'insufficient_stock'

    def __init__(self, available: int):
        self.available = max(available, 0)
        super().__init__(f'Insufficient stock. Only {self.available} available.')


class ConflictError(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The cart was modified concurrently. Please try again.'
    default_code = 'conflict'


class InternalError(exceptions.APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'An internal error occurred. Please try again later.'
    default_code = 'internal_error'

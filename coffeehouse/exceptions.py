"""
Error taxonomy shared by every service, and the DRF exception handler that
turns those errors into `{"error": ..., "kind": ...}` responses.
"""
import logging

from rest_framework import exceptions, status

logger = logging.getLogger(__name__)


class CounterError(exceptions.APIException):
    """Base class for domain errors raised by the services."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request failed'
    default_code = 'error'

    @property
    def kind(self):
        return self.default_code


class NotFound(CounterError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found'
    default_code = 'not_found'


class Unavailable(CounterError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Item is not available'
    default_code = 'unavailable'


class Unauthenticated(CounterError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Authentication required'
    default_code = 'unauthenticated'


class Forbidden(CounterError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action'
    default_code = 'forbidden'


class Conflict(CounterError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The resource was modified concurrently, try again'
    default_code = 'conflict'


class ValidationFailed(CounterError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input'
    default_code = 'validation'


# DRF raises its own exceptions before a view runs (authentication, permission
# classes, serializer validation); give them the same stable kinds.
DRF_KINDS = {
    exceptions.NotAuthenticated: Unauthenticated.default_code,
    exceptions.AuthenticationFailed: Unauthenticated.default_code,
    exceptions.PermissionDenied: Forbidden.default_code,
    exceptions.ValidationError: ValidationFailed.default_code,
    exceptions.ParseError: ValidationFailed.default_code,
    exceptions.NotFound: NotFound.default_code,
}


def error_kind(exc):
    if isinstance(exc, CounterError):
        return exc.kind
    for exc_class, kind in DRF_KINDS.items():
        if isinstance(exc, exc_class):
            return kind
    return getattr(exc, 'default_code', 'error')


def exception_handler(exc, context):
    """Render every API error as `{"error": message, "kind": kind}`."""
    # rest_framework.views loads DEFAULT_AUTHENTICATION_CLASSES, which imports this module
    from rest_framework.views import exception_handler as drf_exception_handler

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    kind = error_kind(exc)
    if isinstance(exc, exceptions.ValidationError):
        body = {'error': 'Invalid input', 'kind': kind, 'fields': response.data}
    else:
        detail = response.data.get('detail', exc) if isinstance(response.data, dict) else exc
        body = {'error': str(detail), 'kind': kind}

    if response.status_code >= 500:
        logger.error("Request failed: %s", body['error'])
    response.data = body
    return response

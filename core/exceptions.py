"""
Core — Exception Handling

Domain exceptions raised by the service layer and the DRF exception
handler producing the standard error envelope. Storage errors never
reach callers raw: unique-constraint hits become DuplicateNameError,
transport/transaction failures become StoreUnavailableError.

@file core/exceptions.py
"""

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import InterfaceError, OperationalError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger('multistock')


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class BusinessRuleViolation(APIException):
    """Raised when a business rule is violated at the service layer."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Business rule violation.'
    default_code = 'BUSINESS_RULE_VIOLATION'


class InvalidQuantityError(BusinessRuleViolation):
    """Quantity is negative (or not an integer)."""
    default_detail = 'Quantity must be a non-negative integer.'
    default_code = 'INVALID_QUANTITY'


class UnknownReferenceError(BusinessRuleViolation):
    """A referenced group, location or product does not exist."""
    default_detail = 'Referenced resource does not exist.'
    default_code = 'UNKNOWN_REFERENCE'


class DuplicateResourceError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists.'
    default_code = 'DUPLICATE_RESOURCE'


class DuplicateNameError(DuplicateResourceError):
    default_detail = 'This name is already in use.'
    default_code = 'DUPLICATE_NAME'


class ResourceNotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'RESOURCE_NOT_FOUND'


class StoreUnavailableError(APIException):
    """The database could not complete the unit of work; nothing was applied."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Storage is temporarily unavailable. Retry the operation.'
    default_code = 'STORE_UNAVAILABLE'


class TotalStockWriteError(RuntimeError):
    """
    Programming error: something other than the aggregation engine tried
    to write Product.total_stock.
    """


class LedgerWriteError(RuntimeError):
    """
    Programming error: a ProductStock row was removed outside
    ProductStockService, so no product total would be recomputed.
    """


# ---------------------------------------------------------------------------
# Standard exception handler
# ---------------------------------------------------------------------------

def standard_exception_handler(exc, context):
    """
    Wraps every error response in the standard envelope:
      { "success": false, "errors": {...}, "code": "ERROR_CODE" }
    """
    if isinstance(exc, Http404):
        exc = ResourceNotFoundError()
    elif isinstance(exc, PermissionDenied):
        exc = APIException(detail='Permission denied.', code='PERMISSION_DENIED')
        exc.status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, (OperationalError, InterfaceError)):
        logger.error('Store unavailable while handling request: %s', exc)
        exc = StoreUnavailableError()
    elif isinstance(exc, ValidationError):
        data = {
            'success': False,
            'errors': exc.message_dict if hasattr(exc, 'message_dict') else {'detail': exc.messages},
            'code': 'VALIDATION_ERROR',
        }
        return Response(data, status=status.HTTP_400_BAD_REQUEST)

    response = exception_handler(exc, context)

    if response is not None:
        errors = {}
        code = getattr(exc, 'default_code', 'ERROR')

        if isinstance(response.data, dict):
            errors = response.data
            code = response.data.pop('code', code) if 'code' in response.data else code
        elif isinstance(response.data, list):
            errors = {'detail': response.data}
        else:
            errors = {'detail': [str(response.data)]}

        response.data = {
            'success': False,
            'errors': errors,
            'code': code,
        }

    if response is None:
        logger.exception('Unhandled exception in view: %s', exc)
        return Response(
            {'success': False, 'errors': {'detail': ['Internal server error.']}, 'code': 'INTERNAL_ERROR'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return response

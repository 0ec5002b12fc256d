"""
Core — Exception Handling

Custom exceptions and DRF exception handler for consistent API
error envelopes. Ledger failures carry a structured context (step,
entity, cause, compensation outcome) that the handler passes through
to the client.

@file core/exceptions.py
"""

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger('clinicstock')


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class BusinessRuleViolation(APIException):
    """Raised when a request fails a precondition before any write."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Business rule violation.'
    default_code = 'BUSINESS_RULE_VIOLATION'


class InsufficientStockError(BusinessRuleViolation):
    """Raised when a movement would take a quantity below zero."""
    default_detail = 'Insufficient stock for this operation.'
    default_code = 'INSUFFICIENT_STOCK'


class InvalidStateTransition(BusinessRuleViolation):
    """Raised when a state machine transition is not allowed."""
    default_detail = 'Invalid state transition.'
    default_code = 'INVALID_STATE_TRANSITION'


class AlreadyTransferredError(InvalidStateTransition):
    default_detail = 'Purchase has already been transferred to inventory.'
    default_code = 'ALREADY_TRANSFERRED'


class NotPaidError(InvalidStateTransition):
    default_detail = 'Purchase must be paid before it is transferred to inventory.'
    default_code = 'NOT_PAID'


class DuplicateResourceError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists.'
    default_code = 'DUPLICATE_RESOURCE'


class ConflictError(APIException):
    """Raised when a row changed between read and conditional write."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The record was modified concurrently; retry the operation.'
    default_code = 'CONFLICT'

    def __init__(self, detail=None, code=None, *, step=None, entity=None, compensated=True):
        super().__init__(detail=detail, code=code)
        self.step = step
        self.entity = entity
        self.compensated = compensated

    @property
    def context(self) -> dict | None:
        """Set when the conflict interrupted a ledger step; compensated=False means inconsistent tables."""
        if self.step is None:
            return None
        return {
            'step': self.step,
            'entity': self.entity,
            'compensated': self.compensated,
        }


class ResourceNotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'RESOURCE_NOT_FOUND'


class StepFailedError(APIException):
    """
    A record store call failed part-way through a multi-step operation.

    compensated is False when the compensating write for the preceding
    mutation itself failed, meaning the tables may be inconsistent.
    """
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'A storage step failed; the operation was not completed.'
    default_code = 'STEP_FAILED'
    step = 'unknown'

    def __init__(self, detail=None, code=None, *, step=None, entity=None, cause=None, compensated=True):
        super().__init__(detail=detail, code=code)
        if step is not None:
            self.step = step
        self.entity = entity
        self.cause = cause
        self.compensated = compensated

    @property
    def context(self) -> dict:
        return {
            'step': self.step,
            'entity': self.entity,
            'cause': str(self.cause) if self.cause is not None else None,
            'compensated': self.compensated,
        }


class LogWriteFailed(StepFailedError):
    default_detail = 'Could not record the transfer; no stock was moved.'
    default_code = 'LOG_WRITE_FAILED'
    step = 'write_transfer_log'


class SourceUpdateFailed(StepFailedError):
    default_detail = 'Could not debit master inventory.'
    default_code = 'SOURCE_UPDATE_FAILED'
    step = 'debit_source'


class DestinationUpdateFailed(StepFailedError):
    default_detail = 'Could not credit pharmacy inventory.'
    default_code = 'DESTINATION_UPDATE_FAILED'
    step = 'credit_destination'


class PartialApplicationError(StepFailedError):
    """Some purchase items reached master inventory before a later one failed."""
    default_detail = 'Purchase was only partially applied to inventory.'
    default_code = 'PARTIAL_APPLICATION'
    step = 'apply_item'

    def __init__(self, detail=None, code=None, *, applied_item_ids=(), **kwargs):
        super().__init__(detail=detail, code=code, **kwargs)
        self.applied_item_ids = [str(pk) for pk in applied_item_ids]

    @property
    def context(self) -> dict:
        ctx = super().context
        ctx['applied_item_ids'] = self.applied_item_ids
        return ctx


# ---------------------------------------------------------------------------
# Standard exception handler
# ---------------------------------------------------------------------------

def standard_exception_handler(exc, context):
    """
    Wraps every error response in the standard envelope:
      { "success": false, "errors": {...}, "code": "ERROR_CODE" }
    Ledger step failures and mid-operation conflicts add a "context" object.
    """
    if isinstance(exc, Http404):
        exc = ResourceNotFoundError()
    elif isinstance(exc, PermissionDenied):
        exc = APIException(detail='Permission denied.', code='PERMISSION_DENIED')
        exc.status_code = status.HTTP_403_FORBIDDEN
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
        if isinstance(exc, (StepFailedError, ConflictError)) and exc.context is not None:
            response.data['context'] = exc.context

    if response is None:
        logger.exception('Unhandled exception in view: %s', exc)
        return Response(
            {'success': False, 'errors': {'detail': ['Internal server error.']}, 'code': 'INTERNAL_ERROR'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return response

# ===== apps/depots/exceptions.py =====
"""
Error taxonomy of the depot engine.

Every error is a DRF ``APIException`` so the API boundary renders it with the
right status code; the core raises them and never catches them itself.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class DepotError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Depot operation failed.'
    default_code = 'depot_error'


class Unauthorized(DepotError):
    """Role or ownership check failed. Never reported as NotFound."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Unauthorized.'
    default_code = 'unauthorized'


class NotFound(DepotError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class InvalidInput(DepotError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'invalid_input'


class InsufficientPosition(DepotError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Not enough units held to sell.'
    default_code = 'insufficient_position'


class InsufficientCash(DepotError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Not enough cash.'
    default_code = 'insufficient_cash'


class BudgetExceeded(DepotError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Monthly savings plan budget exceeded.'
    default_code = 'budget_exceeded'


class Conflict(DepotError):
    """A concurrent mutation invalidated the operation; the caller should retry."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Concurrent modification, please retry.'
    default_code = 'conflict'

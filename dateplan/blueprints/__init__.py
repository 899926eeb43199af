"""
Date Elimination Service
Blueprint registry and shared error mapping.

Participant-facing routes (availability, participants) share one mapping:

    NotFoundError       404
    ConflictError       409   date belongs to a different plan
    StateConflictError  410   date locked / plan no longer active
    ForbiddenError      403   undo by someone other than the actor
    ExpiredError        410   undo window passed
    ValidationError     400
    anything else       500, logged with traceback, no detail in the body

Owner routes (plans_bp) register their own handlers: wrong state is a 400
there, and ownership failures are reported as 404.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from dateplan.core.exceptions import (
    ConflictError,
    ExpiredError,
    ForbiddenError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from dateplan.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def register_participant_error_handlers(bp):
    """Attach the participant-facing error mapping to ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, error.public_message)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_MISMATCH, str(error))

    @bp.errorhandler(StateConflictError)
    def _handle_state_conflict(error: StateConflictError):
        return api_error(E.GONE, str(error))

    @bp.errorhandler(ForbiddenError)
    def _handle_forbidden(error: ForbiddenError):
        return api_error(E.FORBIDDEN, str(error))

    @bp.errorhandler(ExpiredError)
    def _handle_expired(error: ExpiredError):
        return api_error(E.EXPIRED, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")

    return bp

"""
Plans Blueprint — owner operations.

Endpoints:
    POST   /api/v1/plans/force-reopen
           Body: { "ownerId": str, "planId": str, "planDateId": str }
           Returns: 200 { "date", "reopenVersion", "reviewFlaggedCount" }

    PATCH  /api/v1/plans/<plan_id>/status
           Body: { "ownerId": str, "status": "locked" | "deleted" }
           Returns: 200 plan dict + "lockedDates"

    GET    /api/v1/plans/<plan_id>/events?ownerId=<id>
           Returns: 200 { "events": [ledger entry, ...] } (chronological)

Error mapping differs from the participant routes:
    - Missing plan, missing date and "not the owner" all answer 404
      "Plan not found" so a caller cannot probe for other people's plans.
    - A plan or date in the wrong state answers 400.
"""

import logging

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import HTTPException

import dateplan.services.plan_service as plan_service
import dateplan.services.reopen_service as reopen_service
from dateplan.core.exceptions import (
    ForbiddenError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from dateplan.utils.errors import E, api_error, require_fields

logger = logging.getLogger(__name__)

plans_bp = Blueprint("plans", __name__, url_prefix="/api/v1/plans")


# ── Error handlers ────────────────────────────────────────────────────────────


@plans_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    if error.resource == "Plan":
        return api_error(E.NOT_FOUND, "Plan not found")
    return api_error(E.NOT_FOUND, error.public_message)


@plans_bp.errorhandler(ForbiddenError)
def _handle_forbidden(error: ForbiddenError):
    logger.info("Owner check failed: %s", error)
    return api_error(E.NOT_FOUND, "Plan not found")


@plans_bp.errorhandler(StateConflictError)
def _handle_state_conflict(error: StateConflictError):
    return api_error(E.CONFLICT_STATE, str(error))


@plans_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.VALIDATION_INVALID, str(error), details=error.details)


@plans_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return error
    logger.exception("Unexpected error in plans_bp endpoint=%s", request.endpoint)
    return api_error(E.INTERNAL, "Internal server error")


# ── Routes ────────────────────────────────────────────────────────────────────


@plans_bp.route("/force-reopen", methods=["POST"])
def force_reopen():
    """Owner resets an eliminated date: marks cleared, version bumped."""
    data = request.get_json(silent=True) or {}
    err = require_fields(data, "ownerId", "planId", "planDateId")
    if err:
        return err

    result = reopen_service.force_reopen(
        str(data["ownerId"]), str(data["planId"]), str(data["planDateId"]),
    )
    return jsonify(result), 200


@plans_bp.route("/<plan_id>/status", methods=["PATCH"])
def update_status(plan_id):
    data = request.get_json(silent=True) or {}
    err = require_fields(data, "ownerId", "status")
    if err:
        return err

    result = plan_service.set_plan_status(str(data["ownerId"]), plan_id, data["status"])
    return jsonify(result), 200


@plans_bp.route("/<plan_id>/events", methods=["GET"])
def list_events(plan_id):
    owner_id = request.args.get("ownerId")
    if not owner_id:
        return api_error(E.VALIDATION_REQUIRED, "Missing ownerId parameter")
    events = plan_service.list_plan_events(owner_id, plan_id)
    return jsonify({"events": events}), 200

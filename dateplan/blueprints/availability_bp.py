"""
Availability Blueprint — toggle, undo and the per-plan summary.

Endpoints:
    POST   /api/v1/availability/toggle
           Body: { "participantId": str, "planDateId": str }
           Returns: 200 { "dateStatus", "eventLogId", "undoDeadline" }

    POST   /api/v1/availability/undo
           Body: { "participantId": str, "eventLogId": str }
           Returns: 200 { "dateStatus" }

    GET    /api/v1/plans/<plan_id>/availability
           Returns: 200 per-date summary (status, unavailable count, who).

Layer contract:
    - Blueprint: parse + validate input, call service, return JSON.
    - NO db.session calls here — writes are owned by the services.
    - participantId is the caller's identity, already authenticated upstream.
"""

import logging

from flask import Blueprint, jsonify, request

from dateplan.blueprints import register_participant_error_handlers
from dateplan.services import availability_service, undo_service
from dateplan.utils.errors import require_fields

logger = logging.getLogger(__name__)

availability_bp = Blueprint("availability", __name__, url_prefix="/api/v1")
register_participant_error_handlers(availability_bp)


@availability_bp.route("/availability/toggle", methods=["POST"])
def toggle():
    """Mark a date unavailable for the calling participant."""
    data = request.get_json(silent=True) or {}
    err = require_fields(data, "participantId", "planDateId")
    if err:
        return err

    result = availability_service.toggle_unavailable(
        str(data["participantId"]), str(data["planDateId"]),
    )
    return jsonify(result), 200


@availability_bp.route("/availability/undo", methods=["POST"])
def undo():
    """Reverse the caller's elimination while its undo window is open."""
    data = request.get_json(silent=True) or {}
    err = require_fields(data, "participantId", "eventLogId")
    if err:
        return err

    result = undo_service.undo(str(data["participantId"]), str(data["eventLogId"]))
    return jsonify(result), 200


@availability_bp.route("/plans/<plan_id>/availability", methods=["GET"])
def plan_summary(plan_id):
    summary = availability_service.get_plan_availability_summary(plan_id)
    return jsonify(summary), 200

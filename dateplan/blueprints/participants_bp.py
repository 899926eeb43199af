"""
Participants Blueprint — done toggle, review acknowledgement, own marks.

Endpoints:
    POST   /api/v1/participants/done
           Body: { "participantId": str }
           Returns: 200 { "isDone", "sweptUndoWindows" }

    POST   /api/v1/participants/review
           Body: { "participantId": str }
           Returns: 200 { "needsReview": false }

    GET    /api/v1/participants/<participant_id>/availability
           Returns: 200 { "availability": [mark, ...] }
"""

import logging

from flask import Blueprint, jsonify, request

from dateplan.blueprints import register_participant_error_handlers
from dateplan.services import availability_service, participant_service
from dateplan.utils.errors import require_fields

logger = logging.getLogger(__name__)

participants_bp = Blueprint("participants", __name__, url_prefix="/api/v1/participants")
register_participant_error_handlers(participants_bp)


@participants_bp.route("/done", methods=["POST"])
def toggle_done():
    data = request.get_json(silent=True) or {}
    err = require_fields(data, "participantId")
    if err:
        return err
    return jsonify(participant_service.toggle_done(str(data["participantId"]))), 200


@participants_bp.route("/review", methods=["POST"])
def acknowledge_review():
    data = request.get_json(silent=True) or {}
    err = require_fields(data, "participantId")
    if err:
        return err
    return jsonify(participant_service.acknowledge_review(str(data["participantId"]))), 200


@participants_bp.route("/<participant_id>/availability", methods=["GET"])
def participant_availability(participant_id):
    marks = availability_service.get_participant_availability(participant_id)
    return jsonify({"availability": marks}), 200

"""Standardised API error responses.

Usage
-----
    from dateplan.utils.errors import api_error, E

    return api_error(E.VALIDATION_REQUIRED, "Missing participantId or planDateId")
    return api_error(E.GONE, str(exc))
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Records that do not belong together – HTTP 409
    CONFLICT_MISMATCH = "ERR_CONFLICT_MISMATCH"

    # Permissions – HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"

    # Locked, inactive or expired – HTTP 410
    GONE = "ERR_GONE"
    EXPIRED = "ERR_EXPIRED"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.CONFLICT_STATE: 400,
    E.NOT_FOUND: 404,
    E.CONFLICT_MISMATCH: 409,
    E.FORBIDDEN: 403,
    E.GONE: 410,
    E.EXPIRED: 410,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def require_fields(data, *names: str):
    """Return an error response naming the missing fields, or None.

    A body that is not a JSON object counts as missing every field.
    """
    if not isinstance(data, dict):
        data = {}
    missing = [n for n in names if not data.get(n)]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"Missing {' or '.join(missing)}",
            details={"missing": missing},
        )
    return None

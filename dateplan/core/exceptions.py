"""
Service-wide exception hierarchy.

Services raise these types; blueprints register handlers against the base
classes once and get consistent HTTP status codes everywhere.  The concrete
subclasses exist so callers and tests can tell the individual failure modes
apart without string matching on messages.

Taxonomy:
    NotFoundError        plan, date, participant or ledger entry missing
    ConflictError        request references records that do not belong together
    StateConflictError   record exists but is in the wrong state
    ForbiddenError       caller is not allowed to act on the record
    ExpiredError         a time-boxed capability has lapsed
    ValidationError      well-formed input that violates a business rule

Usage:
    from dateplan.core.exceptions import DateNotFoundError, UndoExpiredError

    raise DateNotFoundError(resource_id=plan_date_id)
    raise UndoExpiredError()
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Security note: owner routes also raise (or map to) this for records the
    caller may not see.  A 403 would confirm the resource exists; a 404 does
    not.

    Args:
        resource: Human-readable entity name (e.g. "Plan", "PlanDate").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        return f"{self.resource} not found"


class PlanNotFoundError(NotFoundError):
    def __init__(self, resource_id: str | None = None) -> None:
        super().__init__("Plan", resource_id)


class DateNotFoundError(NotFoundError):
    def __init__(self, resource_id: str | None = None) -> None:
        super().__init__("Date", resource_id)


class ParticipantNotFoundError(NotFoundError):
    def __init__(self, resource_id: str | None = None) -> None:
        super().__init__("Participant", resource_id)


class EventNotFoundError(NotFoundError):
    def __init__(self, resource_id: str | None = None) -> None:
        super().__init__("Event", resource_id)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when the referenced records contradict each other.

    Maps to HTTP 409.
    """


class DateBelongsToOtherPlanError(ConflictError):
    def __init__(self, plan_date_id: str | None = None, plan_id: str | None = None) -> None:
        self.plan_date_id = plan_date_id
        self.plan_id = plan_id
        super().__init__("Date does not belong to this plan")


class StateConflictError(Exception):
    """Raised when a record is not in the state an operation requires.

    Participant routes map this to HTTP 410 (the thing they tried to act on is
    gone for them); owner routes map it to HTTP 400.

    Args:
        message: Human-readable explanation.
        current_state: The state that blocked the operation, for logs.
    """

    def __init__(self, message: str, current_state: str | None = None) -> None:
        self.current_state = current_state
        super().__init__(message)


class DateLockedError(StateConflictError):
    def __init__(self) -> None:
        super().__init__("This date is locked", current_state="locked")


class PlanNotActiveError(StateConflictError):
    def __init__(self, current_state: str | None = None) -> None:
        super().__init__("Plan is no longer active", current_state=current_state)


class DateNotEliminatedError(StateConflictError):
    def __init__(self, current_state: str | None = None) -> None:
        super().__init__(
            f"Only eliminated dates can be reopened (date is {current_state})",
            current_state=current_state,
        )


class InvalidTransitionError(StateConflictError):
    def __init__(self, old_status: str, new_status: str) -> None:
        self.old_status = old_status
        self.new_status = new_status
        super().__init__(
            f"Invalid transition: {old_status} → {new_status}",
            current_state=old_status,
        )


class ForbiddenError(Exception):
    """Raised when the caller may not perform the operation. Maps to HTTP 403."""


class UndoNotAllowedError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__("You cannot undo this action")


class NotOwnerError(ForbiddenError):
    def __init__(self, plan_id: str | None = None) -> None:
        self.plan_id = plan_id
        super().__init__("Only the plan owner can do this")


class ExpiredError(Exception):
    """Raised when a time-boxed capability is used after its deadline. Maps to HTTP 410."""


class UndoExpiredError(ExpiredError):
    def __init__(self) -> None:
        super().__init__("Undo window has expired")

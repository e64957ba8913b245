"""
Error taxonomy for state-changing requests.
Predicates never raise these; services raise them and views, the
executor and the console translate them into envelopes or results.
"""


class TransitionError(Exception):
    """Base class for every refused or failed transition."""

    code = "transition_error"
    http_status = 400
    default_message = "The transition could not be applied."

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class AuthorizationDenied(TransitionError):
    """The actor may not request this action in this context."""

    code = "authorization_denied"
    http_status = 403
    default_message = "You do not have permission to perform this action."


class IllegalTransition(TransitionError):
    """The requested status is not reachable from the current status."""

    code = "illegal_transition"
    http_status = 400
    default_message = "This status change is not allowed."


class AutomaticOnlyTransition(IllegalTransition):
    """The target status is only ever set by the system itself."""

    code = "automatic_only"


class CreationOnlyTransition(IllegalTransition):
    """The target status is only assigned when the entity is created."""

    code = "creation_only"


class StaleState(TransitionError):
    """The entity changed since the client last read it."""

    code = "stale_state"
    http_status = 409
    default_message = (
        "This record was changed by someone else. Refresh and try again."
    )


class ValidationFailure(TransitionError):
    """A required side-payload is missing or malformed."""

    code = "validation_failure"
    http_status = 400


class TransportFailure(TransitionError):
    """The backend could not be reached or did not report success."""

    code = "transport_failure"
    http_status = 502
    default_message = "The server could not complete the request."


class Busy(TransitionError):
    """A transition for the same entity is already in flight."""

    code = "busy"
    http_status = 409
    default_message = "Another change to this record is still in progress."


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        AuthorizationDenied,
        IllegalTransition,
        AutomaticOnlyTransition,
        CreationOnlyTransition,
        StaleState,
        ValidationFailure,
        TransportFailure,
        Busy,
    )
}

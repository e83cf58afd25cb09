"""
Exception taxonomy for goal, task and wallet operations.
Handlers map each class to an HTTP status via `status_code`.
"""


class GoalMateError(Exception):
    """Base class. `title` is the short user-facing heading."""
    status_code = 500
    title = 'Error'

    def __init__(self, message, title=None):
        super().__init__(message)
        self.message = message
        if title:
            self.title = title


class ValidationError(GoalMateError):
    """Bad or missing input. Never retried."""
    status_code = 400
    title = 'Invalid Request'


class ConfirmationRequiredError(ValidationError):
    """Destructive bulk operation called without explicit confirmation."""
    title = 'Confirmation Required'


class NotFoundError(GoalMateError):
    """ Raised when a goal, task or submission does not exist """
    status_code = 404
    title = 'Not Found'

    def __init__(self, kind, record_id):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class ConflictError(GoalMateError):
    """Illegal state transition or failed store condition (e.g. insufficient balance)."""
    status_code = 409
    title = 'Conflict'


class StoreError(GoalMateError):
    """Transient record store failure."""
    status_code = 503
    title = 'Service Unavailable'


class ReconciliationError(StoreError):
    """
    A multi-step financial change failed part way.
    `completed_steps` lists what was already written so it can be reconciled by hand.
    """
    status_code = 500
    title = 'Manual Reconciliation Required'

    def __init__(self, message, completed_steps, cause=None):
        steps = ', '.join(completed_steps) if completed_steps else 'none'
        super().__init__(f"{message} (completed steps: {steps})")
        self.completed_steps = list(completed_steps)
        self.cause = cause


class UnauthorizedError(GoalMateError):
    """No authenticated user on the request."""
    status_code = 401
    title = 'Unauthorized'


class ForbiddenError(GoalMateError):
    """Authenticated, but not in the required group."""
    status_code = 403
    title = 'Forbidden'

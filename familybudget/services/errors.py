"""
Service-level exceptions.

Services raise these; the HTTP layer turns each kind into a status code
(see familybudget.api.errors). Storage failures keep their own
StorageError hierarchy and are reported as upstream failures.
"""


class BudgetApiError(Exception):
    """Base exception for service errors."""
    pass


class NotFoundError(BudgetApiError):
    """A budget, transaction, family, entity, invite or document is absent."""
    pass


class UnauthorizedError(BudgetApiError):
    """Missing/invalid token, or the actor lacks the required family role."""
    pass


class InvalidRequestError(BudgetApiError):
    """The request is malformed or not allowed in the current state."""
    pass


class UpstreamError(BudgetApiError):
    """An external collaborator (mail sender, identity provider) failed."""
    pass

from __future__ import annotations


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketValidationError(TicketServiceError):
    """Raised when ticket input is missing required fields or malformed."""


class InvalidTransitionError(TicketServiceError):
    """Raised when a request violates a lifecycle precondition."""


class TicketNotFoundError(TicketServiceError):
    """Raised when a ticket could not be located."""


class StorageError(TicketServiceError):
    """Raised when the persistence layer fails for reasons unrelated to business rules."""

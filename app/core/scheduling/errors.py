"""Errors raised while validating an availability request."""

from typing import Optional, Sequence

from app.core.scheduling.models import Provider


class SchedulingError(Exception):
    """Base class for scheduling errors."""
    pass


class InvalidRequestError(SchedulingError):
    """Raised when request input is missing or malformed."""
    pass


class UnknownServiceError(InvalidRequestError):
    """Raised when one or more service tokens cannot be resolved."""

    def __init__(self, tokens: Sequence[str]):
        self.tokens = list(tokens)
        super().__init__(f"Invalid service name(s) provided: {', '.join(self.tokens)}")


class UnknownProviderError(InvalidRequestError):
    """Raised when a stylist reference matches nobody on the roster.

    Carries the roster so the caller can be offered valid choices.
    """

    def __init__(self, reference: str, roster: Optional[Sequence[Provider]] = None):
        self.reference = reference
        self.roster = list(roster or [])
        super().__init__(f"Stylist '{reference}' not found")

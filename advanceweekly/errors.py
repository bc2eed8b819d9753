"""Exception hierarchy for AdvanceWeekly."""


class AdvanceWeeklyError(Exception):
    """Base exception for AdvanceWeekly errors."""
    pass


# Operation store

class OperationNotFoundError(AdvanceWeeklyError):
    """Requested async operation does not exist."""
    pass


class InvalidTransitionError(AdvanceWeeklyError):
    """Operation status change not allowed by the state machine."""
    pass


class DuplicateOperationError(AdvanceWeeklyError):
    """An active operation already exists for the same user, type and week."""
    pass


# Dispatch

class UnknownOperationTypeError(AdvanceWeeklyError):
    """No handler is registered for the requested operation type."""
    pass


# Infrastructure failures

class IntegrationError(AdvanceWeeklyError):
    """An integration provider failed to return weekly data."""
    pass


class IntegrationNotConfiguredError(IntegrationError):
    """No provider is registered for the integration type."""
    pass


class LLMServiceError(AdvanceWeeklyError):
    """The language model request failed or timed out."""
    pass


class ParseError(AdvanceWeeklyError):
    """Model output does not follow the theme heading convention."""

    def __init__(self, message: str, line_number: int | None = None):
        if line_number is not None:
            message = f"{message} (line {line_number})"
        super().__init__(message)
        self.line_number = line_number


class ConsolidationError(AdvanceWeeklyError):
    """Integration data could not be consolidated."""
    pass


class ReflectionGenerationError(AdvanceWeeklyError):
    """The reflection draft could not be generated."""
    pass

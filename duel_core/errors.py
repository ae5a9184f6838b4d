class InvalidActionError(ValueError):
    """Raised when a player attempts an illegal action."""


class InvariantViolation(InvalidActionError):
    """Raised when an action would break a rule the board state cannot satisfy at all."""

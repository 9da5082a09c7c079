"""Rejections raised by the round engine.

Every rejection leaves the game state untouched and is recoverable; the
protocol layer turns them into error messages.
"""


class ActionRejected(ValueError):
    """An intent could not be applied."""
    code = "REJECTED"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IllegalAction(ActionRejected):
    """Wrong phase, wrong variant, or not the caller's turn."""
    code = "ILLEGAL_ACTION"


class InsufficientChips(ActionRejected):
    """A bet, call or raise exceeds the available balance."""
    code = "INSUFFICIENT_CHIPS"


class InvalidCombination(ActionRejected):
    """A malformed meld or an illegal card placement."""
    code = "INVALID_COMBINATION"


class ExhaustedSource(ActionRejected):
    """A draw from an empty pile."""
    code = "EXHAUSTED_SOURCE"

class InvalidInputError(ValueError):
    """Malformed strength, seed or request value. Nothing partial is produced."""


class InvalidMatchInputError(InvalidInputError):
    """The result generator was handed a match it cannot simulate."""


class NotFoundError(ValueError):
    pass


class InsufficientFundsError(ValueError):
    pass


class BettingClosedError(ValueError):
    pass


class MatchStateError(ValueError):
    """Operation not allowed in the match's current status."""


class ConflictError(ValueError):
    """Duplicate or already-used resource: coupon code, redemption, referral, claim on cooldown."""

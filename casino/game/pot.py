"""Pot ledger."""
from dataclasses import dataclass, field

from casino.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Pot:
    """Chips contributed this round and not yet paid out.

    ``total`` always equals the sum of outstanding contributions.
    """

    total: int = 0
    _contributions: dict[str, int] = field(default_factory=dict)  # user_id -> chips contributed

    def add_bet(self, user_id: str, amount: int) -> None:
        """Add a bet to the pot.

        Args:
            user_id: Player's user ID.
            amount: Bet amount.
        """
        if amount <= 0:
            return
        self._contributions[user_id] = self._contributions.get(user_id, 0) + amount
        self.total += amount

    def take_all(self) -> int:
        """Empty the pot for a payout.

        Returns:
            The amount that was in the pot.
        """
        amount = self.total
        self.reset()
        return amount

    def refund_all(self) -> dict[str, int]:
        """Empty the pot by handing contributions back.

        Returns:
            Dict of user_id -> amount refunded.
        """
        refunds = dict(self._contributions)
        self.reset()
        logger.debug(f"Refunded pot contributions: {refunds}")
        return refunds

    def get_total(self) -> int:
        """Get total pot amount."""
        return self.total

    def get_contribution(self, user_id: str) -> int:
        """Get a player's outstanding contribution to the pot."""
        return self._contributions.get(user_id, 0)

    @property
    def contributions(self) -> dict[str, int]:
        return dict(self._contributions)

    def reset(self) -> None:
        """Reset pot for new round."""
        self.total = 0
        self._contributions = {}

"""Player model."""
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional

from casino.game.deck import Card

HUMAN_ID = "p1"
DEALER_ID = "dealer"


class PlayerStatus(str, Enum):
    """Seat status within a round."""
    ACTIVE = "active"
    FOLDED = "folded"
    BUST = "bust"
    STANDING = "standing"
    WON = "won"
    LOST = "lost"
    WAITING = "waiting"


@dataclass
class Player:
    """A seat at the table. Seat 0 is always the human."""

    user_id: str
    username: str
    is_bot: bool = True
    chips: int = 0
    hand: list[Card] = field(default_factory=list)
    melds: list[list[Card]] = field(default_factory=list)
    status: PlayerStatus = PlayerStatus.ACTIVE
    current_bet: int = 0
    last_action: Optional[str] = None

    def reset_for_new_round(self) -> None:
        """Reset player state for a new round. Chips carry over."""
        self.hand = []
        self.melds = []
        self.status = PlayerStatus.ACTIVE
        self.current_bet = 0
        self.last_action = None

    def bet(self, amount: int) -> int:
        """Move chips from the balance into the current bet, capped at the balance.

        Args:
            amount: Amount to bet.

        Returns:
            Actual amount bet (may be less if short-stacked).
        """
        actual_bet = min(amount, self.chips)
        self.chips -= actual_bet
        self.current_bet += actual_bet
        return actual_bet

    def pay(self, amount: int) -> None:
        """Pay chips to the house outside any pot (e.g. a buy-in).

        Raises:
            ValueError: If the balance is too small.
        """
        if amount > self.chips:
            raise ValueError(f"{self.username} only has {self.chips} chips")
        self.chips -= amount

    def fold(self) -> None:
        """Fold the hand."""
        self.status = PlayerStatus.FOLDED

    def receive_cards(self, cards: list[Card]) -> None:
        """Add cards to the hand."""
        self.hand.extend(cards)

    def remove_cards(self, card_ids: list[str]) -> list[Card]:
        """Take cards out of the hand by id, keeping the order of ``card_ids``."""
        by_id = {card.id: card for card in self.hand}
        removed = [by_id[card_id] for card_id in card_ids]
        wanted = set(card_ids)
        self.hand = [card for card in self.hand if card.id not in wanted]
        return removed

    def find_card(self, card_id: str) -> Optional[Card]:
        for card in self.hand:
            if card.id == card_id:
                return card
        return None

    def reveal_hand(self) -> None:
        for card in self.hand:
            card.face_up = True

    def win_pot(self, amount: int) -> None:
        """Win chips.

        Args:
            amount: Amount won.
        """
        self.chips += amount

    @property
    def is_folded(self) -> bool:
        return self.status == PlayerStatus.FOLDED

    @property
    def is_human(self) -> bool:
        return not self.is_bot

    def to_dict(self, hide_cards: bool = True) -> dict:
        """Convert to dictionary for serialization.

        Args:
            hide_cards: If True, face-down cards are sent without rank/suit.

        Returns:
            Player state dictionary.
        """
        reveal = None if hide_cards else True
        return {
            "user_id": self.user_id,
            "username": self.username,
            "is_bot": self.is_bot,
            "chips": self.chips,
            "status": self.status.value,
            "current_bet": self.current_bet,
            "last_action": self.last_action,
            "hand": [c.to_dict(reveal) for c in self.hand],
            "melds": [[c.to_dict(True) for c in meld] for meld in self.melds],
        }

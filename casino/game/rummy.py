"""Rummy meld validation and hand moves."""
from collections import defaultdict
from enum import Enum
from typing import Optional

from casino.game.deck import Card
from casino.game.errors import ExhaustedSource, IllegalAction, InvalidCombination
from casino.game.player import Player
from casino.game.state import GameState
from casino.utils.logger import get_logger

logger = get_logger(__name__)

MIN_MELD_SIZE = 3


class MeldKind(str, Enum):
    SET = "set"
    RUN = "run"


class DrawSource(str, Enum):
    STOCK = "stock"
    DISCARD = "discard"


def is_set(cards: list[Card]) -> bool:
    """All cards share one rank."""
    return bool(cards) and all(c.rank == cards[0].rank for c in cards)


def is_run(cards: list[Card]) -> bool:
    """All cards share one suit and form an Ace-low consecutive sequence."""
    if not cards or any(c.suit != cards[0].suit for c in cards):
        return False
    values = sorted(c.rank.sequence_value for c in cards)
    return all(b == a + 1 for a, b in zip(values, values[1:]))


def validate_meld(cards: list[Card]) -> MeldKind:
    """Classify a meld.

    Args:
        cards: Selected cards.

    Returns:
        SET when all ranks match (checked first), otherwise RUN.

    Raises:
        InvalidCombination: Fewer than three cards, or neither a set nor a run.
    """
    if len(cards) < MIN_MELD_SIZE:
        raise InvalidCombination(f"Invalid meld: need {MIN_MELD_SIZE}+ cards.")
    if is_set(cards):
        return MeldKind.SET
    if is_run(cards):
        return MeldKind.RUN
    raise InvalidCombination("Invalid meld: must be a set (same rank) or a run (same suit, in sequence).")


def find_sets(hand: list[Card]) -> list[list[Card]]:
    """Group a hand by rank and return every group of three or more."""
    by_rank: dict[str, list[Card]] = defaultdict(list)
    for card in hand:
        by_rank[card.rank.value].append(card)
    return [group for group in by_rank.values() if len(group) >= MIN_MELD_SIZE]


def draw(state: GameState, player: Player, source: DrawSource) -> Card:
    """Draw the top card of the stock or discard pile into a hand.

    Raises:
        ExhaustedSource: The chosen pile is empty.
    """
    if source == DrawSource.STOCK:
        card = state.deck.draw(face_up=True)
        if card is None:
            raise ExhaustedSource("The stock is empty.")
    else:
        if not state.discard_pile:
            raise ExhaustedSource("The discard pile is empty.")
        card = state.discard_pile.pop()
        card.face_up = True
    player.hand.append(card)
    logger.debug(f"{player.username} draws from {source.value}")
    return card


def meld(player: Player, card_ids: list[str]) -> MeldKind:
    """Move a validated set or run from hand to the player's melds.

    Raises:
        IllegalAction: A selected card is not in the hand.
        InvalidCombination: The selection is not a valid meld.
    """
    if len(set(card_ids)) != len(card_ids):
        raise IllegalAction("A card was selected twice.")
    cards = [player.find_card(card_id) for card_id in card_ids]
    if any(card is None for card in cards):
        raise IllegalAction("Selected cards must come from your hand.")
    kind = validate_meld(cards)
    player.melds.append(player.remove_cards(card_ids))
    for card in player.melds[-1]:
        card.face_up = True
    logger.debug(f"{player.username} melds a {kind.value}: {[str(c) for c in cards]}")
    return kind


def discard(state: GameState, player: Player, card_id: str) -> Card:
    """Move one card from hand to the top of the discard pile.

    Raises:
        IllegalAction: The card is not in the hand.
    """
    if player.find_card(card_id) is None:
        raise IllegalAction("Select 1 card from your hand to discard.")
    card = player.remove_cards([card_id])[0]
    card.face_up = True
    state.discard_pile.append(card)
    logger.debug(f"{player.username} discards {card}")
    return card


def recycle_draw(state: GameState) -> Optional[Card]:
    """Draw for a bot: stock first, otherwise the bottom of the discard pile."""
    card = state.deck.draw(face_up=True)
    if card is None and state.discard_pile:
        card = state.discard_pile.pop(0)
        card.face_up = True
    return card

"""Klondike Solitaire layout and move rules."""
from typing import Optional

from casino.game.deck import Card, Rank
from casino.game.errors import IllegalAction, InvalidCombination
from casino.game.state import PileType, SolitaireState
from casino.utils.logger import get_logger

logger = get_logger(__name__)

TABLEAU_COLUMNS = 7
FOUNDATION_PILES = 4


def deal_layout(cards: list[Card]) -> SolitaireState:
    """Lay out a Klondike deal.

    Column ``i`` gets ``i + 1`` cards with only the last one face up; the
    rest of the cards form the face-down stock.

    Args:
        cards: A full deck in any order.

    Returns:
        The new layout.
    """
    layout = SolitaireState()
    idx = 0
    for col in range(TABLEAU_COLUMNS):
        for row in range(col + 1):
            card = cards[idx]
            card.face_up = row == col
            layout.tableau[col].append(card)
            idx += 1
    layout.stock = cards[idx:]
    for card in layout.stock:
        card.face_up = False
    return layout


def can_place_on_foundation(card: Card, pile: list[Card]) -> bool:
    """Aces start a foundation; then same suit, one rank higher."""
    if not pile:
        return card.rank == Rank.ACE
    top = pile[-1]
    return card.suit == top.suit and card.rank.sequence_value == top.rank.sequence_value + 1


def can_place_on_tableau(card: Card, column: list[Card]) -> bool:
    """Kings fill empty columns; otherwise opposite colour, one rank lower."""
    if not column:
        return card.rank == Rank.KING
    top = column[-1]
    return (
        top.face_up
        and card.is_red != top.is_red
        and card.rank.sequence_value == top.rank.sequence_value - 1
    )


def _pile(layout: SolitaireState, pile_type: PileType, index: int) -> list[Card]:
    if pile_type == PileType.TABLEAU:
        return layout.tableau[index]
    if pile_type == PileType.FOUNDATION:
        return layout.foundations[index]
    if pile_type == PileType.WASTE:
        return layout.waste
    return layout.stock


def _take(layout: SolitaireState, pile_type: PileType, index: int, position: int) -> list[Card]:
    """Remove cards from ``position`` to the end of a pile, exposing the new top."""
    pile = _pile(layout, pile_type, index)
    moved = pile[position:]
    del pile[position:]
    if pile_type == PileType.TABLEAU and pile:
        pile[-1].face_up = True
    return moved


def move_card(layout: SolitaireState, card_id: str, destination: PileType, index: int) -> int:
    """Drag a card (and the face-up run below it) onto another pile.

    Args:
        layout: The Solitaire layout.
        card_id: Card being moved.
        destination: TABLEAU or FOUNDATION.
        index: Destination pile index.

    Returns:
        Net change in the number of foundation cards (-1, 0 or +1).

    Raises:
        IllegalAction: The card cannot be picked up or the destination does not exist.
        InvalidCombination: The destination does not accept the card.
    """
    if destination == PileType.TABLEAU:
        if not 0 <= index < TABLEAU_COLUMNS:
            raise IllegalAction(f"No tableau column {index}.")
    elif destination == PileType.FOUNDATION:
        if not 0 <= index < FOUNDATION_PILES:
            raise IllegalAction(f"No foundation {index}.")
    else:
        raise IllegalAction("Cards can only be moved to the tableau or a foundation.")

    location = layout.locate(card_id)
    if location is None:
        raise IllegalAction("That card is not on the table.")
    source, source_index, position = location
    pile = _pile(layout, source, source_index)
    card = pile[position]

    if source == PileType.STOCK or not card.face_up:
        raise IllegalAction("Face-down cards cannot be moved.")
    if source in (PileType.WASTE, PileType.FOUNDATION) and position != len(pile) - 1:
        raise IllegalAction("Only the top card of that pile can be moved.")
    if source == destination and source_index == index:
        raise InvalidCombination("The card is already there.")

    if destination == PileType.FOUNDATION:
        if position != len(pile) - 1:
            raise InvalidCombination("Only one card at a time can go to a foundation.")
        if not can_place_on_foundation(card, layout.foundations[index]):
            raise InvalidCombination(f"{card} cannot go on that foundation.")
    elif not can_place_on_tableau(card, layout.tableau[index]):
        raise InvalidCombination(f"{card} cannot go on that column.")

    moved = _take(layout, source, source_index, position)
    _pile(layout, destination, index).extend(moved)
    logger.debug(f"Moved {[str(c) for c in moved]} from {source.value} to {destination.value} {index}")

    delta = 0
    if destination == PileType.FOUNDATION:
        delta += 1
    if source == PileType.FOUNDATION:
        delta -= 1
    return delta


def auto_move(layout: SolitaireState, card_id: str) -> int:
    """Send an exposed card to the first foundation that accepts it.

    Args:
        layout: The Solitaire layout.
        card_id: Top card of the waste or of a tableau column.

    Returns:
        Index of the foundation it went to.

    Raises:
        IllegalAction: The card is not an exposed waste or tableau card.
        InvalidCombination: No foundation accepts it.
    """
    location = layout.locate(card_id)
    if location is None:
        raise IllegalAction("That card is not on the table.")
    source, source_index, position = location
    pile = _pile(layout, source, source_index)
    card = pile[position]
    if source not in (PileType.WASTE, PileType.TABLEAU) or position != len(pile) - 1 or not card.face_up:
        raise IllegalAction("Only an exposed card can be sent to a foundation.")

    target = _first_accepting_foundation(layout, card)
    if target is None:
        raise InvalidCombination(f"No foundation accepts {card}.")
    _take(layout, source, source_index, position)
    layout.foundations[target].append(card)
    logger.debug(f"Auto-moved {card} to foundation {target}")
    return target


def _first_accepting_foundation(layout: SolitaireState, card: Card) -> Optional[int]:
    for i, foundation in enumerate(layout.foundations):
        if can_place_on_foundation(card, foundation):
            return i
    return None


def draw_stock(layout: SolitaireState) -> Optional[Card]:
    """Turn the top stock card onto the waste, or recycle the waste when the stock is empty.

    Returns:
        The card turned over, or None when the waste was recycled (or both piles were empty).
    """
    if not layout.stock:
        layout.stock = list(reversed(layout.waste))
        layout.waste = []
        for card in layout.stock:
            card.face_up = False
        return None
    card = layout.stock.pop()
    card.face_up = True
    layout.waste.append(card)
    return card

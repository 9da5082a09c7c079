"""Decision rules for computer seats and the dealer."""
import random
from dataclasses import dataclass, field
from typing import Optional

from casino.game.betting import Action, ActionType
from casino.game.deck import Card, blackjack_score
from casino.game.player import Player, PlayerStatus
from casino.game.rummy import find_sets, recycle_draw
from casino.game.state import GameState, Variant
from casino.utils.logger import get_logger

logger = get_logger(__name__)

BLACKJACK_STAND_SCORE = 17

# Rolls above these thresholds trigger the action
RAISE_WHEN_FACING_BET = 0.8
CALL_WHEN_FACING_BET = 0.2
RAISE_WHEN_UNOPENED = 0.9

BOT_NAMES = [
    "Pondy", "Weaponized", "Mythic", "Calamari", "Th3vious", "Arjay",
    "Tireaz", "Dotti", "Falky", "Iamcat21", "Sofis", "LustyCow", "Maral", "Sinari",
]


def decide_blackjack_action(bot: Player) -> Action:
    """Hit below 17, otherwise stand."""
    if blackjack_score(bot.hand) < BLACKJACK_STAND_SCORE:
        return Action(type=ActionType.HIT)
    return Action(type=ActionType.STAND)


def decide_betting_action(
    bot: Player,
    to_call: int,
    variant: Variant,
    raise_increment: int,
    rng: Optional[random.Random] = None,
) -> Action:
    """Pick fold/check/call/raise for a Poker or Hold'em bot.

    Facing a bet, a bot raises about one time in five when it can afford
    it, otherwise calls if it can (Hold'em bots always call when able),
    otherwise folds. With nothing to call it raises about one time in ten
    and checks the rest.

    Args:
        bot: The acting seat.
        to_call: Chips needed to match the highest bet.
        variant: POKER or TEXAS_HOLDEM.
        raise_increment: Fixed raise above the call.
        rng: Random source.

    Returns:
        An action the bot can afford.
    """
    roll = (rng or random).random()

    if to_call > 0:
        if roll > RAISE_WHEN_FACING_BET and bot.chips >= to_call + raise_increment:
            return Action(type=ActionType.RAISE, amount=to_call + raise_increment)
        wants_to_call = roll > CALL_WHEN_FACING_BET or variant == Variant.TEXAS_HOLDEM
        if wants_to_call and bot.chips >= to_call:
            return Action(type=ActionType.CALL, amount=to_call)
        return Action(type=ActionType.FOLD)

    if roll > RAISE_WHEN_UNOPENED and bot.chips >= raise_increment:
        return Action(type=ActionType.RAISE, amount=raise_increment)
    return Action(type=ActionType.CHECK)


@dataclass
class RummyTurn:
    """What a Rummy bot did on its turn."""
    drawn: Optional[Card] = None
    melds: list[list[Card]] = field(default_factory=list)
    discarded: Optional[Card] = None


def play_rummy_turn(bot: Player, state: GameState, rng: Optional[random.Random] = None) -> RummyTurn:
    """Draw, lay down every set of three or more, then discard at random.

    A bot whose hand empties is marked as having won.
    """
    turn = RummyTurn()
    turn.drawn = recycle_draw(state)
    if turn.drawn is not None:
        bot.hand.append(turn.drawn)

    for group in find_sets(bot.hand):
        bot.melds.append(bot.remove_cards([c.id for c in group]))
        for card in group:
            card.face_up = True
        turn.melds.append(group)

    if bot.hand:
        card = (rng or random).choice(bot.hand)
        bot.remove_cards([card.id])
        card.face_up = True
        state.discard_pile.append(card)
        turn.discarded = card
        bot.last_action = "Played Turn"

    if not bot.hand:
        bot.status = PlayerStatus.WON
        bot.last_action = "WON"
        logger.info(f"{bot.username} went out")
    return turn


def dealer_step(state: GameState) -> bool:
    """Play one Blackjack dealer action.

    The first action turns the hole card over; after that the dealer
    hits below 17.

    Returns:
        True once the dealer stands.
    """
    hidden = [card for card in state.dealer_hand if not card.face_up]
    if hidden:
        for card in hidden:
            card.face_up = True
        return False

    if blackjack_score(state.dealer_hand) < BLACKJACK_STAND_SCORE:
        card = state.deck.draw(face_up=True)
        if card is None:
            return True
        state.dealer_hand.append(card)
        return False
    return True

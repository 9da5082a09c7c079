"""Turn order and betting round logic."""
from enum import Enum
from dataclasses import dataclass

from casino.config import config
from casino.game.deck import blackjack_score
from casino.game.errors import IllegalAction, InsufficientChips, ExhaustedSource
from casino.game.player import Player, PlayerStatus, DEALER_ID
from casino.game.state import GameState, Variant
from casino.utils.logger import get_logger

logger = get_logger(__name__)


class ActionType(str, Enum):
    """Player action types."""
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    RAISE = "raise"
    HIT = "hit"
    STAND = "stand"


BETTING_ACTIONS = (ActionType.FOLD, ActionType.CHECK, ActionType.CALL, ActionType.RAISE)
BLACKJACK_ACTIONS = (ActionType.HIT, ActionType.STAND)


@dataclass
class Action:
    """A player's action."""
    type: ActionType
    amount: int = 0


def next_actor(current_id: str, players: list[Player], variant: Variant) -> str:
    """Find who acts after ``current_id``.

    Rummy, Poker and Hold'em go round the table skipping folded seats and
    hand over to the dealer once every other seat has folded. Blackjack
    walks forward once and hands over to the dealer at the end.

    Args:
        current_id: The seat that just acted.
        players: Seats in table order.
        variant: The game being played.

    Returns:
        Next seat's user ID, or the dealer sentinel.
    """
    ids = [p.user_id for p in players]
    if current_id not in ids:
        return DEALER_ID
    idx = ids.index(current_id)

    if variant == Variant.BLACKJACK:
        for player in players[idx + 1:]:
            if not player.is_folded:
                return player.user_id
        return DEALER_ID

    count = len(players)
    for step in range(1, count):
        player = players[(idx + step) % count]
        if not player.is_folded:
            return player.user_id
    return DEALER_ID


class BettingRound:
    """Applies seat actions to a table's state and tracks round completion."""

    def __init__(self, state: GameState, variant: Variant, raise_increment: int = 0):
        """Initialize betting round.

        Args:
            state: The table state to act on.
            variant: The game being played.
            raise_increment: Fixed raise above the call amount.
        """
        self.state = state
        self.variant = variant
        self.raise_increment = raise_increment or config.raise_increment

    def get_call_amount(self, player: Player) -> int:
        """Get the amount needed to call."""
        return max(0, self.state.highest_bet - player.current_bet)

    def get_raise_cost(self, player: Player) -> int:
        """Get the total chips a raise costs (call plus increment)."""
        return self.get_call_amount(player) + self.raise_increment

    def get_valid_actions(self, player: Player) -> list[ActionType]:
        """Get valid actions for a player.

        Args:
            player: The player to check.

        Returns:
            List of valid action types.
        """
        if self.variant == Variant.BLACKJACK:
            return list(BLACKJACK_ACTIONS)
        if not self.variant.is_betting_game:
            return []

        actions = [ActionType.FOLD]
        to_call = self.get_call_amount(player)
        if to_call == 0:
            actions.append(ActionType.CHECK)
        elif player.chips >= to_call:
            actions.append(ActionType.CALL)
        if player.chips >= self.get_raise_cost(player):
            actions.append(ActionType.RAISE)
        return actions

    def process_action(self, player: Player, action: Action) -> None:
        """Process a player's action and pass the turn on.

        Validation happens before anything is mutated.

        Args:
            player: The acting player.
            action: The action to process.

        Raises:
            IllegalAction: Action does not belong to this game or is not allowed now.
            InsufficientChips: Not enough chips to call or raise.
            ExhaustedSource: Hit with an empty deck.
        """
        if self.variant == Variant.BLACKJACK:
            allowed = BLACKJACK_ACTIONS
        elif self.variant.is_betting_game:
            allowed = BETTING_ACTIONS
        else:
            allowed = ()
        if action.type not in allowed:
            raise IllegalAction(f"Cannot {action.type.value} in {self.variant.display_name}.")

        state = self.state
        to_call = self.get_call_amount(player)

        if action.type == ActionType.FOLD:
            player.fold()
            player.last_action = "FOLD"
            logger.debug(f"{player.username} folds")

        elif action.type == ActionType.CHECK:
            if to_call > 0:
                raise IllegalAction(f"Cannot check. Must call ${to_call}.")
            player.last_action = "CHECK"
            logger.debug(f"{player.username} checks")

        elif action.type == ActionType.CALL:
            if player.chips < to_call:
                raise InsufficientChips("Not enough chips.")
            player.bet(to_call)
            state.pot.add_bet(player.user_id, to_call)
            player.last_action = "CALL"
            logger.debug(f"{player.username} calls {to_call}")

        elif action.type == ActionType.RAISE:
            total_cost = to_call + self.raise_increment
            if player.chips < total_cost:
                raise InsufficientChips("Not enough chips to raise.")
            player.bet(total_cost)
            state.pot.add_bet(player.user_id, total_cost)
            state.highest_bet = player.current_bet
            player.last_action = "RAISE"
            logger.debug(f"{player.username} raises to {player.current_bet}")

        elif action.type == ActionType.HIT:
            card = state.deck.draw(face_up=True)
            if card is None:
                raise ExhaustedSource("The deck is empty.")
            player.hand.append(card)
            player.last_action = "HIT"
            if blackjack_score(player.hand) > 21:
                player.status = PlayerStatus.BUST
                player.last_action = "BUST"
            logger.debug(f"{player.username} hits {card} ({blackjack_score(player.hand)})")
            if player.status != PlayerStatus.BUST:
                # Same seat keeps the turn until standing or busting
                state.advance_turn(player.user_id)
                return

        elif action.type == ActionType.STAND:
            player.status = PlayerStatus.STANDING
            player.last_action = "STAND"
            logger.debug(f"{player.username} stands on {blackjack_score(player.hand)}")

        state.advance_turn(next_actor(player.user_id, state.players, self.variant))

    @property
    def is_complete(self) -> bool:
        """Check if the betting round is complete.

        Complete once every non-folded seat has matched the highest bet and
        the turn has come back round to the first non-folded seat.
        """
        if not self.variant.is_betting_game:
            return False
        active = self.state.non_folded()
        if not active:
            return False
        all_matched = all(p.current_bet == self.state.highest_bet for p in active)
        return all_matched and self.state.active_player_id == active[0].user_id

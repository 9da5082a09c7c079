"""End-of-round winner determination and chip settlement."""
import random
from dataclasses import dataclass, field
from typing import Optional

from casino.config import config
from casino.game.deck import blackjack_score
from casino.game.player import Player, PlayerStatus, DEALER_ID, HUMAN_ID
from casino.game.state import GameState, Variant
from casino.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RoundResult:
    """Outcome of a resolved round."""
    message: str
    winner_id: Optional[str] = None
    payouts: dict[str, int] = field(default_factory=dict)  # user_id -> chips credited

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "winner_id": self.winner_id,
            "payouts": dict(self.payouts),
        }


def resolve_round(
    state: GameState,
    variant: Variant,
    rng: Optional[random.Random] = None,
) -> RoundResult:
    """Settle the round and reveal every hand.

    Args:
        state: Table state; chips and pot are updated in place.
        variant: The game being played.
        rng: Random source for the showdown pick.

    Returns:
        The round result. ``winner_id`` names the winning seat (the dealer
        sentinel when the house beats the human at Blackjack, None on a push
        or a no-result round).
    """
    for card in state.dealer_hand:
        card.face_up = True

    if variant == Variant.BLACKJACK:
        result = _resolve_blackjack(state)
    elif variant == Variant.RUMMY:
        result = _resolve_rummy(state)
    elif variant.is_betting_game:
        result = _resolve_showdown(state, rng)
    else:
        result = RoundResult(message="Round complete.")

    for player in state.players:
        if player.is_bot:
            player.reveal_hand()
        if player.user_id in result.payouts:
            player.win_pot(result.payouts[player.user_id])

    logger.info(f"Round resolved: {result.message} payouts={result.payouts}")
    return result


def _settle_blackjack_seat(player: Player, dealer_score: int) -> tuple[int, str]:
    """Return (chips credited, outcome) for one seat against the dealer."""
    bet = player.current_bet
    score = blackjack_score(player.hand)
    if player.status == PlayerStatus.BUST or score > 21:
        return 0, "bust"
    if dealer_score > 21:
        return bet * 2, "dealer_bust"
    if score > dealer_score:
        return bet * 2, "win"
    if score == dealer_score:
        return bet, "push"
    return 0, "lose"


_SEAT_STATUS = {
    "win": PlayerStatus.WON,
    "dealer_bust": PlayerStatus.WON,
    "lose": PlayerStatus.LOST,
    "bust": PlayerStatus.BUST,
}


def _resolve_blackjack(state: GameState) -> RoundResult:
    # The house takes the antes and pays winners from its own bank
    state.pot.take_all()
    dealer_score = blackjack_score(state.dealer_hand)
    dealer = config.dealer_name

    payouts: dict[str, int] = {}
    outcome = "lose"
    for player in state.players:
        credited, seat_outcome = _settle_blackjack_seat(player, dealer_score)
        if credited:
            payouts[player.user_id] = credited
        if seat_outcome in _SEAT_STATUS:
            player.status = _SEAT_STATUS[seat_outcome]
        if player.user_id == HUMAN_ID:
            outcome = seat_outcome

    messages = {
        "bust": f"Bust! {dealer} wins.",
        "dealer_bust": f"{dealer} busts! You win!",
        "win": "You win!",
        "push": "Push.",
        "lose": f"{dealer} wins.",
    }
    if outcome in ("win", "dealer_bust"):
        winner = HUMAN_ID
    elif outcome == "push":
        winner = None
    else:
        winner = DEALER_ID
    return RoundResult(message=messages[outcome], winner_id=winner, payouts=payouts)


def _resolve_rummy(state: GameState) -> RoundResult:
    winner = next((p for p in state.players if not p.hand), None)
    if winner is None:
        refunds = state.pot.refund_all()
        return RoundResult(message="Draw / No Winner", payouts=refunds)

    winner.status = PlayerStatus.WON
    for player in state.players:
        if player is not winner:
            player.status = PlayerStatus.LOST
    amount = state.pot.take_all() + config.rummy_reward
    return RoundResult(
        message=f"{winner.username} wins!",
        winner_id=winner.user_id,
        payouts={winner.user_id: amount},
    )


def _resolve_showdown(state: GameState, rng: Optional[random.Random]) -> RoundResult:
    contenders = state.non_folded()
    if not contenders:
        refunds = state.pot.refund_all()
        return RoundResult(message="No contenders. Bets returned.", payouts=refunds)

    if len(contenders) == 1:
        winner = contenders[0]
        message = f"{winner.username} wins (others folded)!"
    else:
        # No hand ranking: any seat still in is equally likely to take the pot
        winner = (rng or random).choice(contenders)
        message = f"{winner.username} wins the pot!"

    for player in contenders:
        player.status = PlayerStatus.WON if player is winner else PlayerStatus.LOST
    amount = state.pot.take_all()
    return RoundResult(
        message=message,
        winner_id=winner.user_id,
        payouts={winner.user_id: amount},
    )

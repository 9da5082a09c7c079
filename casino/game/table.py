"""Table state machine for every supported variant."""
import random
import uuid
from typing import Any, Awaitable, Callable, Optional

from casino.config import config
from casino.game import rummy, solitaire
from casino.game.betting import Action, ActionType, BettingRound, next_actor
from casino.game.bots import (
    BOT_NAMES,
    decide_betting_action,
    decide_blackjack_action,
    dealer_step,
    play_rummy_turn,
)
from casino.game.deck import Card, Deck, create_deck, shuffle
from casino.game.errors import ExhaustedSource, IllegalAction, InsufficientChips
from casino.game.player import DEALER_ID, HUMAN_ID, Player, PlayerStatus
from casino.game.resolution import resolve_round
from casino.game.rummy import DrawSource
from casino.game.scheduler import Delays, TurnScheduler
from casino.game.state import GameState, PileType, RoundPhase, Street, Variant
from casino.utils.logger import get_logger

logger = get_logger(__name__)

MAX_EXCHANGE = 3

HAND_SIZES = {
    Variant.BLACKJACK: 2,
    Variant.POKER: 5,
    Variant.TEXAS_HOLDEM: 2,
    Variant.RUMMY: 7,
}

# Cards revealed when leaving each Hold'em street
STREET_REVEALS = {
    Street.PREFLOP: (Street.FLOP, 3, "The Flop"),
    Street.FLOP: (Street.TURN, 1, "The Turn"),
    Street.TURN: (Street.RIVER, 1, "The River"),
}

# Phases in which a bot or the dealer can be the active actor
_TURN_PHASES = (RoundPhase.PLAYING, RoundPhase.RUMMY_DRAW)


class Table:
    """One human against bots and a dealer, for a single variant.

    Human intents are coroutine methods that either apply fully or raise an
    ``ActionRejected`` without touching the state. Bot, dealer and pacing
    steps run through a ``TurnScheduler``; each checks at run time that the
    state it was scheduled for still holds.
    """

    def __init__(
        self,
        variant: Variant,
        starting_balance: Optional[int] = None,
        rng: Optional[random.Random] = None,
        delays: Optional[Delays] = None,
        deck_factory: Optional[Callable[[], list[Card]]] = None,
        bot_count: Optional[int] = None,
        table_id: Optional[str] = None,
    ):
        """Initialize a table and seat the players.

        Args:
            variant: Game to play.
            starting_balance: Human's chips (config default if omitted).
            rng: Random source for seating, shuffles and bot decisions.
            delays: Pacing delays.
            deck_factory: Returns the cards for each deal, top card last.
            bot_count: Number of bots (3 or 4 at random if omitted).
            table_id: Identifier used in logs and snapshots.
        """
        self.variant = variant
        self.table_id = table_id or str(uuid.uuid4())[:8]
        self.rng = rng or random.Random()
        self.delays = delays or Delays()
        self.deck_factory = deck_factory

        if starting_balance is None:
            starting_balance = config.starting_balance
        self.state = GameState(players=self._seat_players(starting_balance, bot_count))
        self.betting = BettingRound(self.state, variant)
        self.scheduler = TurnScheduler(name=self.table_id, on_failure=self._abandon_round)

        self.is_closed = False
        self.final_balance: Optional[int] = None

        # Callbacks for broadcasting events
        self._event_callback: Optional[Callable[[str, Any], Awaitable[None]]] = None

    def _seat_players(self, starting_balance: int, bot_count: Optional[int]) -> list[Player]:
        players = [
            Player(
                user_id=HUMAN_ID,
                username=config.human_name,
                is_bot=False,
                chips=starting_balance,
            )
        ]
        if self.variant == Variant.SOLITAIRE:
            return players

        count = bot_count if bot_count is not None else self.rng.choice([3, 4])
        for idx in self.rng.sample(range(len(BOT_NAMES)), count):
            players.append(Player(
                user_id=f"b{idx}",
                username=BOT_NAMES[idx],
                chips=self.rng.randint(config.bot_min_chips, config.bot_max_chips),
            ))
        return players

    def set_event_callback(self, callback: Callable[[str, Any], Awaitable[None]]) -> None:
        """Set callback for broadcasting events.

        Args:
            callback: Async function(event_type, data) to call on events.
        """
        self._event_callback = callback

    async def _emit(self, event_type: str, data: Any) -> None:
        """Emit an event via callback."""
        if self._event_callback:
            await self._event_callback(event_type, data)

    async def _publish(self) -> None:
        await self._emit("state_changed", self.get_snapshot())

    @property
    def human(self) -> Player:
        return self.state.human

    # Guards

    def _require_open(self) -> None:
        if self.is_closed:
            raise IllegalAction("The session is closed.")

    def _require_variant(self, *variants: Variant) -> None:
        if self.variant not in variants:
            raise IllegalAction(f"Not available in {self.variant.display_name}.")

    def _require_phase(self, *phases: RoundPhase) -> None:
        if self.state.phase not in phases:
            raise IllegalAction(f"Not allowed during {self.state.phase.value}.")

    def _require_turn(self) -> None:
        if self.state.active_player_id != HUMAN_ID:
            raise IllegalAction("It is not your turn.")

    # Session flow

    async def open(self) -> None:
        """Start the first round."""
        self._require_open()
        logger.info(
            f"Table {self.table_id} opened: {self.variant.display_name} "
            f"with {len(self.state.players)} seat(s)"
        )
        await self._enter_betting(f"Welcome to {self.variant.display_name}! Place your bet.")

    async def _enter_betting(self, message: str) -> None:
        self.state.phase = RoundPhase.BETTING
        self.state.message = message
        if self.variant != Variant.RUMMY:
            await self._publish()
            return

        if self.human.chips < config.rummy_ante:
            logger.info(f"Table {self.table_id}: human cannot cover the Rummy ante")
            self.state.message = "Insufficient funds!"
            await self.close()
            return
        await self.place_bet()

    async def place_bet(self, amount: Optional[int] = None) -> None:
        """Place the round's bet or buy-in and start dealing.

        Everyone at the table antes the same amount, capped at their balance.

        Args:
            amount: Bet size (default bet if omitted). Ignored for Rummy and
                Solitaire, whose stakes are fixed.

        Raises:
            IllegalAction: Wrong phase, or the bet is outside the table limits.
            InsufficientChips: The human cannot cover the bet.
        """
        self._require_open()
        self._require_phase(RoundPhase.BETTING)
        state = self.state
        human = self.human

        if self.variant == Variant.SOLITAIRE:
            cost = config.solitaire_cost
            if human.chips < cost:
                raise InsufficientChips("Insufficient funds!")
            human.pay(cost)
            logger.info(f"Table {self.table_id}: Solitaire buy-in {cost}")
        else:
            if self.variant == Variant.RUMMY:
                amount = config.rummy_ante
            else:
                amount = config.default_bet if amount is None else amount
                if not config.min_bet <= amount <= config.max_bet:
                    raise IllegalAction(
                        f"Bet must be between ${config.min_bet} and ${config.max_bet}."
                    )
            if human.chips < amount:
                raise InsufficientChips("Insufficient funds!")

            for player in state.players:
                state.pot.add_bet(player.user_id, player.bet(amount))
            state.highest_bet = amount
            logger.info(f"Table {self.table_id}: bet {amount}, pot {state.pot.get_total()}")

        state.phase = RoundPhase.DEALING
        state.message = "Dealing..."
        await self._publish()
        self.scheduler.schedule(self.delays.deal, self._deal_round)

    async def _deal_round(self) -> None:
        state = self.state
        if self.is_closed or state.phase != RoundPhase.DEALING:
            return

        cards = self.deck_factory() if self.deck_factory else shuffle(create_deck(), self.rng)

        if self.variant == Variant.SOLITAIRE:
            state.deck = Deck()
            state.solitaire = solitaire.deal_layout(cards)
            state.phase = RoundPhase.PLAYING
            state.message = "Build the foundations from Ace to King."
            state.advance_turn(HUMAN_ID)
            logger.info(f"Table {self.table_id}: Solitaire layout dealt")
            await self._publish()
            return

        state.deck = Deck(cards)
        size = HAND_SIZES[self.variant]
        for player in state.players:
            face_up = self.variant == Variant.BLACKJACK or player.is_human
            player.receive_cards(state.deck.deal(size, face_up=face_up))

        if self.variant == Variant.BLACKJACK:
            state.dealer_hand = [state.deck.draw(face_up=True), state.deck.draw(face_up=False)]
            state.phase = RoundPhase.PLAYING
        elif self.variant == Variant.TEXAS_HOLDEM:
            state.street = Street.PREFLOP
            state.phase = RoundPhase.PLAYING
        elif self.variant == Variant.POKER:
            state.phase = RoundPhase.SWAPPING
        elif self.variant == Variant.RUMMY:
            state.discard_pile.append(state.deck.draw(face_up=True))
            state.phase = RoundPhase.RUMMY_DRAW

        state.advance_turn(HUMAN_ID)
        logger.info(f"Table {self.table_id}: dealt {size} card(s) to {len(state.players)} seat(s)")
        self._schedule_turn()
        await self._publish()

    def _schedule_turn(self) -> None:
        """Prompt the human, or schedule the bot or dealer whose turn it is."""
        state = self.state
        actor = state.active_player_id
        if actor is None or state.is_game_over:
            return

        if actor == HUMAN_ID:
            if state.phase == RoundPhase.SWAPPING:
                state.message = "Select cards to exchange."
            elif state.phase == RoundPhase.RUMMY_DRAW:
                state.message = "Your turn. Draw a card."
            elif self.variant == Variant.BLACKJACK and state.phase == RoundPhase.PLAYING:
                state.message = "Hit or Stand?"
            elif self.variant.is_betting_game and state.phase == RoundPhase.PLAYING:
                to_call = self.betting.get_call_amount(self.human)
                state.message = f"Call ${to_call} or Fold?" if to_call > 0 else "Your turn."
            return

        if state.phase in _TURN_PHASES:
            self.scheduler.schedule(self.delays.bot_think, self._run_turn, actor)

    async def _run_turn(self, actor_id: str) -> None:
        state = self.state
        if (
            self.is_closed
            or state.is_game_over
            or state.active_player_id != actor_id
            or state.phase not in _TURN_PHASES
        ):
            logger.debug(f"Table {self.table_id}: skipping stale turn for {actor_id}")
            return

        if actor_id == DEALER_ID:
            await self._dealer_turn()
            return

        bot = state.get_player(actor_id)
        if self.variant == Variant.RUMMY:
            await self._bot_rummy_turn(bot)
            return

        if self.variant == Variant.BLACKJACK:
            action = decide_blackjack_action(bot)
        else:
            action = decide_betting_action(
                bot,
                self.betting.get_call_amount(bot),
                self.variant,
                self.betting.raise_increment,
                self.rng,
            )
        self.betting.process_action(bot, action)
        state.message = f"{bot.username}: {bot.last_action}"
        await self._after_action()

    async def _dealer_turn(self) -> None:
        state = self.state
        if self.variant != Variant.BLACKJACK:
            state.message = "Showdown!"
            await self._resolve()
            return

        if dealer_step(state):
            await self._resolve()
            return
        state.message = f"{config.dealer_name} plays..."
        state.advance_turn(DEALER_ID)
        self._schedule_turn()
        await self._publish()

    async def _bot_rummy_turn(self, bot: Player) -> None:
        state = self.state
        turn = play_rummy_turn(bot, state, self.rng)
        if bot.status == PlayerStatus.WON:
            await self._went_out(bot)
            return
        if turn.drawn is None:
            # Stock and discard pile both empty: nobody can go out
            state.message = "No cards left to draw."
            state.active_player_id = None
            await self._publish()
            self.scheduler.schedule(self.delays.resolve, self._resolve)
            return

        state.message = f"{bot.username} played their turn."
        state.advance_turn(next_actor(bot.user_id, state.players, self.variant))
        self._schedule_turn()
        await self._publish()

    async def _went_out(self, player: Player) -> None:
        """Mark a Rummy seat with an empty hand as the winner and resolve shortly."""
        state = self.state
        player.status = PlayerStatus.WON
        state.message = "You went out!" if player.is_human else f"{player.username} went out!"
        state.active_player_id = None
        await self._publish()
        self.scheduler.schedule(self.delays.resolve, self._resolve)

    async def _after_action(self) -> None:
        """Pass control on after a Blackjack or betting action."""
        state = self.state
        if self.variant.is_betting_game:
            if len(state.non_folded()) <= 1:
                state.advance_turn(DEALER_ID)
            elif self.betting.is_complete:
                self._end_betting_round()
        self._schedule_turn()
        await self._publish()

    def _end_betting_round(self) -> None:
        state = self.state
        if self.variant == Variant.TEXAS_HOLDEM and state.street in STREET_REVEALS:
            state.phase = RoundPhase.DEALING_COMMUNITY
            state.active_player_id = None
            self.scheduler.schedule(self.delays.community, self._deal_community)
            return
        if self.variant == Variant.TEXAS_HOLDEM:
            state.street = Street.SHOWDOWN
        state.advance_turn(DEALER_ID)

    async def _deal_community(self) -> None:
        state = self.state
        if self.is_closed or state.phase != RoundPhase.DEALING_COMMUNITY:
            return

        street, count, label = STREET_REVEALS[state.street]
        state.community_cards.extend(state.deck.deal(count, face_up=True))
        state.street = street
        state.highest_bet = 0
        for player in state.players:
            player.current_bet = 0
            player.last_action = None

        state.phase = RoundPhase.PLAYING
        state.message = label
        state.advance_turn(state.non_folded()[0].user_id)
        logger.info(
            f"Table {self.table_id}: {label} "
            f"{[str(c) for c in state.community_cards]}"
        )
        self._schedule_turn()
        await self._publish()

    async def _resolve(self) -> None:
        state = self.state
        if self.is_closed or state.is_game_over:
            return

        state.phase = RoundPhase.RESOLVING
        state.active_player_id = None
        if self.variant == Variant.TEXAS_HOLDEM:
            state.street = Street.SHOWDOWN
        result = resolve_round(state, self.variant, self.rng)
        state.message = result.message
        state.winner_id = result.winner_id
        state.is_game_over = True

        await self._emit("round_resolved", result.to_dict())
        await self._publish()
        self.scheduler.schedule(self.delays.overlay, self._finish_round)

    def _abandon_round(self, error: BaseException) -> None:
        """End the round with every bet returned after a scheduled step failed."""
        state = self.state
        if self.is_closed or state.is_game_over:
            return
        for user_id, amount in state.pot.refund_all().items():
            state.get_player(user_id).win_pot(amount)
        state.phase = RoundPhase.ROUND_OVER
        state.active_player_id = None
        state.is_game_over = True
        state.message = "Round abandoned. Bets returned."
        logger.warning(f"Table {self.table_id}: round abandoned after {error!r}")
        self.scheduler.schedule(0, self._publish)

    async def _finish_round(self) -> None:
        state = self.state
        if self.is_closed or state.phase != RoundPhase.RESOLVING:
            return
        state.phase = RoundPhase.VICTORY if state.winner_id == HUMAN_ID else RoundPhase.ROUND_OVER
        logger.info(f"Table {self.table_id}: round over ({state.phase.value})")
        await self._publish()

    # Blackjack, Poker and Hold'em

    async def act(self, action_type: ActionType) -> None:
        """Apply a fold/check/call/raise/hit/stand for the human.

        Raises:
            IllegalAction: Wrong variant, phase or turn, or checking into a bet.
            InsufficientChips: Cannot cover a call or raise.
            ExhaustedSource: Hit with an empty deck.
        """
        self._require_open()
        self._require_variant(Variant.BLACKJACK, Variant.POKER, Variant.TEXAS_HOLDEM)
        self._require_phase(RoundPhase.PLAYING)
        self._require_turn()

        human = self.human
        self.betting.process_action(human, Action(type=action_type))
        self.state.message = f"You: {human.last_action}"
        await self._after_action()

    async def fold(self) -> None:
        await self.act(ActionType.FOLD)

    async def check(self) -> None:
        await self.act(ActionType.CHECK)

    async def call(self) -> None:
        await self.act(ActionType.CALL)

    async def raise_bet(self) -> None:
        await self.act(ActionType.RAISE)

    async def hit(self) -> None:
        await self.act(ActionType.HIT)

    async def stand(self) -> None:
        await self.act(ActionType.STAND)

    async def exchange(self, card_ids: list[str]) -> None:
        """Swap up to three cards for new ones from the deck (Poker).

        Exchanged cards go to the discard pile.

        Raises:
            IllegalAction: Wrong phase, too many or duplicate cards, or cards not in hand.
            ExhaustedSource: Not enough cards left to replace them.
        """
        self._require_open()
        self._require_variant(Variant.POKER)
        self._require_phase(RoundPhase.SWAPPING)
        self._require_turn()

        state = self.state
        human = self.human
        if len(card_ids) > MAX_EXCHANGE:
            raise IllegalAction(f"You can exchange at most {MAX_EXCHANGE} cards.")
        if len(set(card_ids)) != len(card_ids):
            raise IllegalAction("A card was selected twice.")
        if any(human.find_card(card_id) is None for card_id in card_ids):
            raise IllegalAction("Selected cards must come from your hand.")
        if len(card_ids) > state.deck.remaining:
            raise ExhaustedSource("Not enough cards left to exchange.")

        for card in human.remove_cards(card_ids):
            card.face_up = True
            state.discard_pile.append(card)
        human.receive_cards(state.deck.deal(len(card_ids), face_up=True))
        human.last_action = f"Exchanged {len(card_ids)}"
        logger.debug(f"Table {self.table_id}: human exchanged {len(card_ids)} card(s)")

        state.phase = RoundPhase.PLAYING
        state.advance_turn(HUMAN_ID)
        self._schedule_turn()
        await self._publish()

    # Rummy

    async def draw(self, source: DrawSource) -> None:
        """Draw from the stock or the top of the discard pile."""
        self._require_open()
        self._require_variant(Variant.RUMMY)
        self._require_phase(RoundPhase.RUMMY_DRAW)
        self._require_turn()

        card = rummy.draw(self.state, self.human, source)
        self.state.phase = RoundPhase.RUMMY_TURN
        self.state.message = f"You drew {card}. Meld or discard."
        await self._publish()

    async def meld(self, card_ids: list[str]) -> None:
        """Lay down a set or run. Emptying the hand wins the round."""
        self._require_open()
        self._require_variant(Variant.RUMMY)
        self._require_phase(RoundPhase.RUMMY_TURN)
        self._require_turn()

        kind = rummy.meld(self.human, card_ids)
        if not self.human.hand:
            await self._went_out(self.human)
            return
        self.state.message = f"Meld accepted ({kind.value})."
        await self._publish()

    async def discard(self, card_id: str) -> None:
        """Discard one card and end the turn. Emptying the hand wins the round."""
        self._require_open()
        self._require_variant(Variant.RUMMY)
        self._require_phase(RoundPhase.RUMMY_TURN)
        self._require_turn()

        state = self.state
        rummy.discard(state, self.human, card_id)
        self.human.last_action = "Discarded"
        if not self.human.hand:
            await self._went_out(self.human)
            return

        state.phase = RoundPhase.RUMMY_DRAW
        state.message = "Turn over."
        state.advance_turn(next_actor(HUMAN_ID, state.players, self.variant))
        self._schedule_turn()
        await self._publish()

    # Solitaire

    def _require_solitaire_play(self) -> None:
        self._require_open()
        self._require_variant(Variant.SOLITAIRE)
        self._require_phase(RoundPhase.PLAYING)

    async def move_card(self, card_id: str, destination: PileType, index: int) -> None:
        """Move a card (with the run below it) to a tableau column or foundation."""
        self._require_solitaire_play()
        delta = solitaire.move_card(self.state.solitaire, card_id, destination, index)
        self._credit_foundations(delta)
        await self._after_solitaire_move("Moved.")

    async def auto_move(self, card_id: str) -> None:
        """Send an exposed card to the first foundation that accepts it."""
        self._require_solitaire_play()
        solitaire.auto_move(self.state.solitaire, card_id)
        self._credit_foundations(1)
        await self._after_solitaire_move("Sent to foundation.")

    async def draw_stock(self) -> None:
        """Turn over a stock card, or recycle the waste when the stock is empty."""
        self._require_solitaire_play()
        layout = self.state.solitaire
        if not layout.stock and not layout.waste:
            self.state.message = "No cards left in the stock."
        else:
            card = solitaire.draw_stock(layout)
            self.state.message = f"Drew {card}." if card else "Waste recycled into the stock."
        await self._publish()

    def _credit_foundations(self, delta: int) -> None:
        human = self.human
        human.chips = max(0, human.chips + delta * config.solitaire_reward)

    async def _after_solitaire_move(self, message: str) -> None:
        state = self.state
        if state.solitaire.is_won:
            state.phase = RoundPhase.VICTORY
            state.message = "SOLITAIRE COMPLETE!"
            state.winner_id = HUMAN_ID
            state.is_game_over = True
            state.active_player_id = None
            self.human.status = PlayerStatus.WON
            logger.info(f"Table {self.table_id}: Solitaire complete")
        else:
            state.message = message
        await self._publish()

    # Between rounds

    async def start_next_round(self) -> None:
        """Reset for another round, or end the session if the human is broke.

        A Solitaire deal in progress may be abandoned this way too.
        """
        self._require_open()
        if self.variant == Variant.SOLITAIRE:
            self._require_phase(RoundPhase.PLAYING, RoundPhase.ROUND_OVER, RoundPhase.VICTORY)
        else:
            self._require_phase(RoundPhase.ROUND_OVER, RoundPhase.VICTORY)

        if self.human.chips <= 0:
            logger.info(f"Table {self.table_id}: human is out of chips")
            await self.close()
            return

        self.scheduler.cancel_all()
        self.state.reset_for_new_round()
        await self._enter_betting("Place your bet.")

    async def close(self) -> int:
        """Cancel pending steps and end the session.

        Returns:
            The human's final balance.
        """
        if self.is_closed:
            return self.final_balance
        self.scheduler.cancel_all()
        self.is_closed = True
        self.final_balance = self.human.chips
        logger.info(f"Table {self.table_id} closed with final balance {self.final_balance}")
        await self._emit("session_ended", {"final_balance": self.final_balance})
        return self.final_balance

    # State serialization

    def get_valid_actions(self) -> list[str]:
        """Intents the human may send right now."""
        state = self.state
        if self.is_closed:
            return []
        if state.phase.is_terminal:
            return ["start_next_round"]
        if state.phase == RoundPhase.BETTING:
            return ["place_bet"]
        if self.variant == Variant.SOLITAIRE and state.phase == RoundPhase.PLAYING:
            return ["move_card", "auto_move", "draw_stock", "start_next_round"]
        if state.active_player_id != HUMAN_ID:
            return []
        if state.phase == RoundPhase.SWAPPING:
            return ["exchange"]
        if state.phase == RoundPhase.RUMMY_DRAW:
            return ["draw"]
        if state.phase == RoundPhase.RUMMY_TURN:
            return ["meld", "discard"]
        if state.phase == RoundPhase.PLAYING:
            return [a.value for a in self.betting.get_valid_actions(self.human)]
        return []

    def get_snapshot(self) -> dict:
        """Get the full table state as seen by the human.

        Returns:
            Snapshot dictionary; bots' face-down cards are hidden.
        """
        state = self.state
        call_amount = 0
        if self.variant.is_betting_game:
            call_amount = self.betting.get_call_amount(self.human)
        return {
            "table_id": self.table_id,
            "variant": self.variant.value,
            "phase": state.phase.value,
            "street": state.street.value if self.variant == Variant.TEXAS_HOLDEM else None,
            "pot": state.pot.get_total(),
            "highest_bet": state.highest_bet,
            "turn_counter": state.turn_counter,
            "active_player_id": state.active_player_id,
            "message": state.message,
            "is_game_over": state.is_game_over,
            "winner_id": state.winner_id,
            "players": [p.to_dict(hide_cards=p.is_bot) for p in state.players],
            "dealer_hand": [c.to_dict() for c in state.dealer_hand],
            "community_cards": [c.to_dict() for c in state.community_cards],
            "discard_pile": [c.to_dict() for c in state.discard_pile],
            "deck_count": state.deck.remaining,
            "solitaire": state.solitaire.to_dict() if state.solitaire else None,
            "valid_actions": self.get_valid_actions(),
            "call_amount": call_amount,
        }

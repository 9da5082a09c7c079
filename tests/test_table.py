"""Tests for the table state machine."""
import random

import pytest
from casino.config import config
from casino.game.betting import ActionType
from casino.game.deck import Card, Deck, create_deck
from casino.game.errors import IllegalAction, InsufficientChips, InvalidCombination
from casino.game.player import DEALER_ID, HUMAN_ID, PlayerStatus
from casino.game.rummy import DrawSource
from casino.game.scheduler import Delays
from casino.game.state import PileType, RoundPhase, Street, Variant
from casino.game.table import Table


class FixedRoll(random.Random):
    """Random source whose bot decision roll is fixed."""

    def __init__(self, roll: float, seed: int = 0):
        super().__init__(seed)
        self.roll = roll

    def random(self) -> float:
        return self.roll


def stacked_deck(*labels: str) -> list[Card]:
    """Build a full deck whose first draws are ``labels``, in order.

    The top of the deck is the end of the list, so the named cards go last
    in reverse; the rest of the deck sits underneath.
    """
    named = [Card.from_string(label) for label in labels]
    taken = {(c.rank, c.suit) for c in named}
    rest = [c for c in create_deck() if (c.rank, c.suit) not in taken]
    return rest + list(reversed(named))


def make_table(variant: Variant, deck: list[Card] = None, rng: random.Random = None, **kwargs) -> Table:
    """Create a table with three bots and no pacing delays."""
    return Table(
        variant,
        rng=rng or random.Random(7),
        delays=Delays.instant(),
        deck_factory=(lambda: deck) if deck else None,
        bot_count=kwargs.pop("bot_count", 3),
        **kwargs,
    )


async def start_round(table: Table, amount: int = None) -> None:
    """Open the table, bet and wait for the deal."""
    await table.open()
    if table.state.phase == RoundPhase.BETTING:
        await table.place_bet(amount)
    await table.scheduler.wait_idle()


class TestSeating:
    """Test session setup."""

    def test_human_first_then_bots(self):
        table = make_table(Variant.POKER, starting_balance=750)

        assert table.human.user_id == HUMAN_ID
        assert table.human.chips == 750
        assert len(table.state.players) == 4
        assert all(p.user_id.startswith("b") for p in table.state.players[1:])

    def test_bot_balances_in_range(self):
        table = make_table(Variant.BLACKJACK, bot_count=4)

        for bot in table.state.players[1:]:
            assert config.bot_min_chips <= bot.chips <= config.bot_max_chips

    def test_random_bot_count(self):
        table = Table(Variant.TEXAS_HOLDEM, rng=random.Random(3))

        assert len(table.state.players) - 1 in (3, 4)

    def test_solitaire_seats_only_human(self):
        table = make_table(Variant.SOLITAIRE)

        assert len(table.state.players) == 1


class TestBetting:
    """Test the BETTING phase."""

    @pytest.mark.asyncio
    async def test_bet_collects_ante_from_every_seat(self):
        table = make_table(Variant.POKER)
        await table.open()

        await table.place_bet(100)

        assert table.state.phase == RoundPhase.DEALING
        assert table.state.pot.get_total() == 400
        assert table.state.highest_bet == 100
        assert table.human.chips == config.starting_balance - 100

    @pytest.mark.asyncio
    async def test_insufficient_funds(self):
        """Test a bet above the balance is rejected and nothing moves."""
        table = make_table(Variant.BLACKJACK, starting_balance=50)
        await table.open()

        with pytest.raises(InsufficientChips, match="Insufficient funds"):
            await table.place_bet(100)

        assert table.state.phase == RoundPhase.BETTING
        assert table.human.chips == 50
        assert table.state.pot.get_total() == 0

    @pytest.mark.asyncio
    async def test_bet_outside_limits(self):
        table = make_table(Variant.BLACKJACK)
        await table.open()

        with pytest.raises(IllegalAction):
            await table.place_bet(config.max_bet + 1)
        assert table.state.phase == RoundPhase.BETTING

    @pytest.mark.asyncio
    async def test_solitaire_buy_in_paid_to_house(self):
        table = make_table(Variant.SOLITAIRE)

        await start_round(table)

        assert table.human.chips == config.starting_balance - config.solitaire_cost
        assert table.state.pot.get_total() == 0
        assert table.state.phase == RoundPhase.PLAYING

    @pytest.mark.asyncio
    async def test_rummy_starts_without_bet(self):
        """Test Rummy deals as soon as the table opens."""
        table = make_table(Variant.RUMMY)

        await table.open()
        await table.scheduler.wait_idle()

        assert table.state.phase == RoundPhase.RUMMY_DRAW
        assert all(len(p.hand) == 7 for p in table.state.players)
        assert len(table.state.discard_pile) == 1


class TestDealing:
    """Test the per-variant deal."""

    @pytest.mark.asyncio
    async def test_blackjack_deal(self):
        table = make_table(Variant.BLACKJACK)

        await start_round(table)

        state = table.state
        assert state.phase == RoundPhase.PLAYING
        assert state.active_player_id == HUMAN_ID
        assert all(len(p.hand) == 2 for p in state.players)
        assert [c.face_up for c in state.dealer_hand] == [True, False]

    @pytest.mark.asyncio
    async def test_holdem_deal_hides_bot_cards(self):
        table = make_table(Variant.TEXAS_HOLDEM)

        await start_round(table)

        assert table.state.street == Street.PREFLOP
        assert all(c.face_up for c in table.human.hand)
        for bot in table.state.players[1:]:
            assert len(bot.hand) == 2
            assert not any(c.face_up for c in bot.hand)

    @pytest.mark.asyncio
    async def test_poker_deal_enters_swapping(self):
        table = make_table(Variant.POKER)

        await start_round(table)

        assert table.state.phase == RoundPhase.SWAPPING
        assert all(len(p.hand) == 5 for p in table.state.players)
        assert table.state.message == "Select cards to exchange."

    @pytest.mark.asyncio
    async def test_every_card_accounted_for(self):
        table = make_table(Variant.RUMMY)

        await start_round(table)

        ids = [c.id for c in table.state.all_cards()]
        assert len(ids) == 52
        assert len(set(ids)) == 52


class TestBlackjackRound:
    """End-to-end Blackjack rounds."""

    # Human, three bots standing on 18, then the dealer's up and hole cards
    OPENING = ("10♣", "7♦", "10♠", "8♠", "10♥", "8♥", "10♦", "8♦", "6♠", "9♥")

    @pytest.mark.asyncio
    async def test_dealer_busts(self):
        """Test the human wins 2x the bet when the dealer busts."""
        table = make_table(Variant.BLACKJACK, deck=stacked_deck(*self.OPENING, "K♠"))
        await start_round(table, 100)

        await table.stand()
        await table.scheduler.wait_idle()

        assert table.state.phase == RoundPhase.VICTORY
        assert table.state.winner_id == HUMAN_ID
        assert table.human.chips == config.starting_balance + 100
        assert all(c.face_up for c in table.state.dealer_hand)
        assert table.state.pot.get_total() == 0

    @pytest.mark.asyncio
    async def test_dealer_beats_seventeen(self):
        """Test no payout when the dealer stands on 20 against 17."""
        table = make_table(Variant.BLACKJACK, deck=stacked_deck(*self.OPENING, "5♣"))
        await start_round(table, 100)

        await table.stand()
        await table.scheduler.wait_idle()

        assert table.state.phase == RoundPhase.ROUND_OVER
        assert table.state.winner_id == DEALER_ID
        assert table.human.chips == config.starting_balance - 100
        assert table.human.status == PlayerStatus.LOST

    @pytest.mark.asyncio
    async def test_push_returns_bet(self):
        """Test equal scores return exactly the bet."""
        table = make_table(
            Variant.BLACKJACK,
            deck=stacked_deck("10♣", "7♦", "10♠", "8♠", "10♥", "8♥", "10♦", "8♦", "K♦", "7♥"),
        )
        await start_round(table, 100)

        await table.stand()
        await table.scheduler.wait_idle()

        assert table.state.phase == RoundPhase.ROUND_OVER
        assert table.human.chips == config.starting_balance

    @pytest.mark.asyncio
    async def test_hit_keeps_turn(self):
        table = make_table(Variant.BLACKJACK, deck=stacked_deck(*self.OPENING, "2♣"))
        await start_round(table)

        await table.hit()

        assert table.state.active_player_id == HUMAN_ID
        assert len(table.human.hand) == 3
        assert table.get_valid_actions() == ["hit", "stand"]

    @pytest.mark.asyncio
    async def test_human_bust_loses(self):
        table = make_table(Variant.BLACKJACK, deck=stacked_deck(*self.OPENING, "K♣", "2♣"))
        await start_round(table, 100)

        await table.hit()
        await table.scheduler.wait_idle()

        assert table.human.status == PlayerStatus.BUST
        assert table.state.phase == RoundPhase.ROUND_OVER
        assert table.human.chips == config.starting_balance - 100


class TestHoldemRound:
    """Test Hold'em streets."""

    @pytest.mark.asyncio
    async def test_checked_round_deals_flop(self):
        """Test a fully checked preflop round moves on to the flop."""
        table = make_table(Variant.TEXAS_HOLDEM, rng=FixedRoll(0.5))
        await start_round(table)

        await table.check()
        await table.scheduler.wait_idle()

        state = table.state
        assert state.street == Street.FLOP
        assert len(state.community_cards) == 3
        assert state.phase == RoundPhase.PLAYING
        assert state.active_player_id == HUMAN_ID
        assert state.highest_bet == 0
        assert all(p.current_bet == 0 for p in state.players)

    @pytest.mark.asyncio
    async def test_checked_to_showdown(self):
        """Test four checked streets end in a resolved round."""
        table = make_table(Variant.TEXAS_HOLDEM, rng=FixedRoll(0.5))
        await start_round(table, 100)
        chips_before = sum(p.chips for p in table.state.players) + table.state.pot.get_total()

        for _ in range(4):
            await table.check()
            await table.scheduler.wait_idle()

        state = table.state
        assert len(state.community_cards) == 5
        assert state.street == Street.SHOWDOWN
        assert state.phase in (RoundPhase.ROUND_OVER, RoundPhase.VICTORY)
        assert state.pot.get_total() == 0
        assert sum(p.chips for p in state.players) == chips_before

    @pytest.mark.asyncio
    async def test_human_prompted_to_call(self):
        """Test the prompt names the call amount after a bot raise."""
        table = make_table(Variant.TEXAS_HOLDEM, rng=FixedRoll(0.95))
        await start_round(table)

        await table.check()
        await table.scheduler.wait_idle()

        assert table.state.active_player_id == HUMAN_ID
        call = table.betting.get_call_amount(table.human)
        assert call > 0
        assert table.state.message == f"Call ${call} or Fold?"
        assert "check" not in table.get_valid_actions()

    @pytest.mark.asyncio
    async def test_everyone_folds_to_human(self):
        """Test the last seat standing wins the pot uncontested."""
        table = make_table(Variant.POKER, rng=FixedRoll(0.1))
        await start_round(table, 100)
        await table.exchange([])

        await table.raise_bet()
        await table.scheduler.wait_idle()

        assert table.state.phase == RoundPhase.VICTORY
        assert all(p.is_folded for p in table.state.players[1:])
        assert table.human.chips == config.starting_balance + 300


class TestPokerExchange:
    """Test the Poker draw step."""

    @pytest.mark.asyncio
    async def test_exchange_replaces_cards(self):
        table = make_table(Variant.POKER)
        await start_round(table)
        old = [c.id for c in table.human.hand[:2]]

        await table.exchange(old)

        assert table.state.phase == RoundPhase.PLAYING
        assert len(table.human.hand) == 5
        assert not set(old) & {c.id for c in table.human.hand}
        assert [c.id for c in table.state.discard_pile] == old
        assert len(list(table.state.all_cards())) == 52

    @pytest.mark.asyncio
    async def test_exchange_more_than_three_rejected(self):
        table = make_table(Variant.POKER)
        await start_round(table)
        hand = list(table.human.hand)

        with pytest.raises(IllegalAction):
            await table.exchange([c.id for c in hand[:4]])

        assert table.state.phase == RoundPhase.SWAPPING
        assert table.human.hand == hand


class TestRummyRound:
    """End-to-end Rummy."""

    @pytest.mark.asyncio
    async def test_going_out_wins_pot_and_bonus(self):
        """Test draw, meld and a final discard resolve to VICTORY."""
        table = make_table(Variant.RUMMY)
        await start_round(table)
        state = table.state

        five_clubs, five_diamonds, nine = (
            Card.from_string("5♣", True),
            Card.from_string("5♦", True),
            Card.from_string("9♠", True),
        )
        five_hearts = Card.from_string("5♥")
        table.human.hand = [five_clubs, five_diamonds, nine]
        state.deck = Deck(state.deck.cards + [five_hearts])
        pot = state.pot.get_total()

        await table.draw(DrawSource.STOCK)
        assert state.phase == RoundPhase.RUMMY_TURN

        await table.meld([five_clubs.id, five_diamonds.id, five_hearts.id])
        await table.discard(nine.id)
        assert state.message == "You went out!"
        assert not state.is_game_over
        assert table.get_valid_actions() == []

        await table.scheduler.wait_idle()

        assert state.phase == RoundPhase.VICTORY
        assert state.winner_id == HUMAN_ID
        assert table.human.chips == config.starting_balance + pot + config.rummy_reward

    @pytest.mark.asyncio
    async def test_ante_pot_is_sum_of_seat_antes(self, monkeypatch):
        """Test each seat antes what it can cover; a short bot adds less."""
        monkeypatch.setattr(config, "rummy_ante", 10)
        table = make_table(Variant.RUMMY)
        table.state.players[1].chips = 5

        await table.open()

        assert table.state.pot.get_total() == 10 * 3 + 5
        assert table.state.pot.get_contribution("p1") == 10
        assert table.state.players[1].chips == 0

    @pytest.mark.asyncio
    async def test_uncovered_ante_ends_session(self, monkeypatch):
        monkeypatch.setattr(config, "rummy_ante", 100)
        table = make_table(Variant.RUMMY, starting_balance=50)

        await table.open()

        assert table.is_closed
        assert table.final_balance == 50
        assert table.state.message == "Insufficient funds!"
        assert table.state.pot.get_total() == 0

    @pytest.mark.asyncio
    async def test_uncovered_ante_at_next_round_ends_session(self, monkeypatch):
        """Test a human who can no longer ante is not left stuck in BETTING."""
        monkeypatch.setattr(config, "rummy_ante", 100)
        table = make_table(Variant.RUMMY)
        await table.open()
        table.state.phase = RoundPhase.ROUND_OVER
        table.human.chips = 40

        await table.start_next_round()
        await table.scheduler.wait_idle()

        assert table.is_closed
        assert table.final_balance == 40
        assert table.get_valid_actions() == []

    @pytest.mark.asyncio
    async def test_discard_passes_turn_to_bots(self):
        table = make_table(Variant.RUMMY)
        await start_round(table)

        await table.draw(DrawSource.DISCARD)
        await table.discard(table.human.hand[0].id)
        await table.scheduler.wait_idle()

        state = table.state
        if not state.is_game_over:
            assert state.phase == RoundPhase.RUMMY_DRAW
            assert state.active_player_id == HUMAN_ID
            assert state.message == "Your turn. Draw a card."

    @pytest.mark.asyncio
    async def test_betting_action_rejected_in_rummy(self):
        """Test a phase-incompatible intent leaves the state alone."""
        table = make_table(Variant.RUMMY)
        await start_round(table)
        snapshot = table.get_snapshot()

        with pytest.raises(IllegalAction):
            await table.act(ActionType.CALL)

        assert table.get_snapshot() == snapshot

    @pytest.mark.asyncio
    async def test_discard_before_draw_rejected(self):
        table = make_table(Variant.RUMMY)
        await start_round(table)

        with pytest.raises(IllegalAction):
            await table.discard(table.human.hand[0].id)
        assert len(table.human.hand) == 7

    @pytest.mark.asyncio
    async def test_invalid_meld_rejected(self):
        table = make_table(Variant.RUMMY)
        await start_round(table)
        table.human.hand = [Card.from_string(x, True) for x in ("5♣", "6♦", "9♥", "K♠")]
        await table.draw(DrawSource.DISCARD)

        with pytest.raises(InvalidCombination):
            await table.meld([c.id for c in table.human.hand[:3]])
        assert len(table.human.hand) == 5
        assert table.state.phase == RoundPhase.RUMMY_TURN


class TestSolitaireRound:
    """Test Solitaire rewards and victory."""

    @pytest.mark.asyncio
    async def test_auto_move_pays_reward(self):
        table = make_table(Variant.SOLITAIRE)
        await start_round(table)
        layout = table.state.solitaire
        ace = Card.from_string("A♠", True)
        layout.waste.append(ace)
        chips = table.human.chips

        await table.auto_move(ace.id)

        assert layout.foundations[0] == [ace]
        assert table.human.chips == chips + config.solitaire_reward

    @pytest.mark.asyncio
    async def test_moving_off_foundation_refunds_reward(self):
        table = make_table(Variant.SOLITAIRE)
        await start_round(table)
        layout = table.state.solitaire
        ace, two = Card.from_string("A♥", True), Card.from_string("2♥", True)
        layout.waste.extend([ace])
        await table.auto_move(ace.id)
        layout.waste.append(two)
        await table.move_card(two.id, PileType.FOUNDATION, 0)
        chips = table.human.chips

        layout.tableau[6] = [Card.from_string("3♠", True)]
        await table.move_card(two.id, PileType.TABLEAU, 6)

        assert table.human.chips == chips - config.solitaire_reward

    @pytest.mark.asyncio
    async def test_last_card_wins(self):
        table = make_table(Variant.SOLITAIRE)
        await start_round(table)
        layout = table.state.solitaire
        deck = create_deck()
        for card in deck:
            card.face_up = True
        suits = [deck[i * 13:(i + 1) * 13] for i in range(4)]
        # create_deck orders ranks 2..A; foundations need Ace first
        piles = [[s[-1]] + s[:-1] for s in suits]
        king = piles[0].pop()
        layout.tableau = [[] for _ in range(7)]
        layout.foundations = piles
        layout.stock, layout.waste = [], [king]

        await table.auto_move(king.id)

        assert table.state.phase == RoundPhase.VICTORY
        assert table.state.message == "SOLITAIRE COMPLETE!"
        assert table.get_valid_actions() == ["start_next_round"]

    @pytest.mark.asyncio
    async def test_draw_stock_with_nothing_left(self):
        table = make_table(Variant.SOLITAIRE)
        await start_round(table)
        table.state.solitaire.stock = []
        table.state.solitaire.waste = []

        await table.draw_stock()

        assert table.state.message == "No cards left in the stock."


class TestSessionFlow:
    """Test round reset, cancellation and session end."""

    @pytest.mark.asyncio
    async def test_next_round_keeps_balances(self):
        table = make_table(Variant.BLACKJACK, deck=stacked_deck(*TestBlackjackRound.OPENING, "K♠"))
        await start_round(table, 100)
        await table.stand()
        await table.scheduler.wait_idle()
        chips = table.human.chips

        await table.start_next_round()

        assert table.state.phase == RoundPhase.BETTING
        assert table.human.chips == chips
        assert table.human.hand == []
        assert table.state.pot.get_total() == 0

    @pytest.mark.asyncio
    async def test_next_round_rejected_mid_round(self):
        table = make_table(Variant.BLACKJACK)
        await start_round(table)

        with pytest.raises(IllegalAction):
            await table.start_next_round()

    @pytest.mark.asyncio
    async def test_broke_human_ends_session(self):
        events = []

        async def record(event_type, data):
            events.append((event_type, data))

        table = make_table(Variant.BLACKJACK, deck=stacked_deck(*TestBlackjackRound.OPENING, "5♣"),
                           starting_balance=100)
        table.set_event_callback(record)
        await start_round(table, 100)
        await table.stand()
        await table.scheduler.wait_idle()

        await table.start_next_round()

        assert table.is_closed
        assert events[-1] == ("session_ended", {"final_balance": 0})
        assert any(event == "round_resolved" for event, _ in events)

    @pytest.mark.asyncio
    async def test_close_discards_pending_deal(self):
        """Test a scheduled deal never runs once the table closes."""
        table = Table(Variant.BLACKJACK, rng=random.Random(1), bot_count=3,
                      delays=Delays(deal=0.05, bot_think=0, community=0, resolve=0, overlay=0))
        await table.open()
        await table.place_bet(100)

        final = await table.close()
        await table.scheduler.wait_idle()

        assert final == config.starting_balance - 100
        assert table.state.phase == RoundPhase.DEALING
        assert table.human.hand == []
        with pytest.raises(IllegalAction):
            await table.hit()

    @pytest.mark.asyncio
    async def test_stale_bot_turn_discarded(self):
        """Test a bot turn scheduled before a reset does nothing afterwards."""
        table = make_table(Variant.BLACKJACK)
        await start_round(table)
        await table.stand()
        bot = table.state.players[1]
        assert table.state.active_player_id == bot.user_id

        table.scheduler.cancel_all()
        await table.scheduler.wait_idle()

        assert bot.last_action is None
        assert table.state.active_player_id == bot.user_id

    @pytest.mark.asyncio
    async def test_failed_step_abandons_round(self):
        """Test a step that raises returns the bets and leaves the table playable."""
        table = make_table(Variant.BLACKJACK)
        await start_round(table, 100)

        async def broken_step():
            raise RuntimeError("step blew up")

        table.scheduler.schedule(0, broken_step)
        with pytest.raises(RuntimeError):
            await table.scheduler.wait_idle()

        state = table.state
        assert state.phase == RoundPhase.ROUND_OVER
        assert state.message == "Round abandoned. Bets returned."
        assert state.pot.get_total() == 0
        assert table.human.chips == config.starting_balance
        assert table.get_valid_actions() == ["start_next_round"]

        await table.start_next_round()
        assert state.phase == RoundPhase.BETTING

    @pytest.mark.asyncio
    async def test_state_changed_published(self):
        events = []

        async def record(event_type, data):
            events.append(event_type)

        table = make_table(Variant.POKER)
        table.set_event_callback(record)
        await start_round(table)

        assert events.count("state_changed") >= 3

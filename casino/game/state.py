"""Game state aggregates."""
from enum import Enum
from dataclasses import dataclass, field
from typing import Iterator, Optional

from casino.game.deck import Card, Deck
from casino.game.player import Player
from casino.game.pot import Pot


class Variant(str, Enum):
    """Supported table games."""
    BLACKJACK = "blackjack"
    POKER = "poker"
    TEXAS_HOLDEM = "texas_holdem"
    RUMMY = "rummy"
    SOLITAIRE = "solitaire"

    @property
    def display_name(self) -> str:
        return {
            Variant.BLACKJACK: "Blackjack",
            Variant.POKER: "5-Card Draw Poker",
            Variant.TEXAS_HOLDEM: "Texas Hold 'em",
            Variant.RUMMY: "Rummy",
            Variant.SOLITAIRE: "Solitaire",
        }[self]

    @property
    def is_betting_game(self) -> bool:
        """Variants with fold/check/call/raise betting rounds."""
        return self in (Variant.POKER, Variant.TEXAS_HOLDEM)


class RoundPhase(str, Enum):
    """Round phases."""
    BETTING = "BETTING"                      # Waiting for the ante/bet
    DEALING = "DEALING"                      # Cards about to be dealt
    SWAPPING = "SWAPPING"                    # Poker discard/draw exchange
    PLAYING = "PLAYING"                      # Turns in progress
    RUMMY_DRAW = "RUMMY_DRAW"                # Rummy: waiting for a draw
    RUMMY_TURN = "RUMMY_TURN"                # Rummy: meld or discard
    DEALING_COMMUNITY = "DEALING_COMMUNITY"  # Hold'em street reveal
    RESOLVING = "RESOLVING"                  # Payout computed, outcome on display
    ROUND_OVER = "ROUND_OVER"
    VICTORY = "VICTORY"

    @property
    def is_terminal(self) -> bool:
        return self in (RoundPhase.ROUND_OVER, RoundPhase.VICTORY)


class Street(str, Enum):
    """Hold'em betting rounds."""
    PREFLOP = "PREFLOP"
    FLOP = "FLOP"
    TURN = "TURN"
    RIVER = "RIVER"
    SHOWDOWN = "SHOWDOWN"


class PileType(str, Enum):
    """Solitaire piles."""
    TABLEAU = "tableau"
    FOUNDATION = "foundation"
    STOCK = "stock"
    WASTE = "waste"


@dataclass
class SolitaireState:
    """Klondike layout. Tops of piles are the ends of the lists."""

    tableau: list[list[Card]] = field(default_factory=lambda: [[] for _ in range(7)])
    foundations: list[list[Card]] = field(default_factory=lambda: [[] for _ in range(4)])
    stock: list[Card] = field(default_factory=list)
    waste: list[Card] = field(default_factory=list)

    def all_cards(self) -> Iterator[Card]:
        for column in self.tableau:
            yield from column
        for pile in self.foundations:
            yield from pile
        yield from self.stock
        yield from self.waste

    @property
    def foundation_count(self) -> int:
        return sum(len(pile) for pile in self.foundations)

    @property
    def is_won(self) -> bool:
        return self.foundation_count == 52

    def locate(self, card_id: str) -> Optional[tuple[PileType, int, int]]:
        """Find a card.

        Returns:
            (pile type, pile index, position in pile), or None.
        """
        piles = (
            [(PileType.TABLEAU, i, col) for i, col in enumerate(self.tableau)]
            + [(PileType.FOUNDATION, i, pile) for i, pile in enumerate(self.foundations)]
            + [(PileType.STOCK, 0, self.stock), (PileType.WASTE, 0, self.waste)]
        )
        for pile_type, index, pile in piles:
            for position, card in enumerate(pile):
                if card.id == card_id:
                    return pile_type, index, position
        return None

    def to_dict(self) -> dict:
        return {
            "tableau": [[c.to_dict() for c in col] for col in self.tableau],
            "foundations": [[c.to_dict() for c in pile] for pile in self.foundations],
            "stock_count": len(self.stock),
            "waste": [c.to_dict() for c in self.waste],
        }


@dataclass
class GameState:
    """Everything a round engine reads and writes for one table."""

    players: list[Player] = field(default_factory=list)
    deck: Deck = field(default_factory=Deck)
    discard_pile: list[Card] = field(default_factory=list)
    dealer_hand: list[Card] = field(default_factory=list)
    pot: Pot = field(default_factory=Pot)
    highest_bet: int = 0
    turn_counter: int = 0
    active_player_id: Optional[str] = None
    message: str = ""
    is_game_over: bool = False
    winner_id: Optional[str] = None
    community_cards: list[Card] = field(default_factory=list)
    street: Street = Street.PREFLOP
    phase: RoundPhase = RoundPhase.BETTING
    solitaire: Optional[SolitaireState] = None

    @property
    def human(self) -> Player:
        return self.players[0]

    def get_player(self, user_id: str) -> Optional[Player]:
        for player in self.players:
            if player.user_id == user_id:
                return player
        return None

    def non_folded(self) -> list[Player]:
        return [p for p in self.players if not p.is_folded]

    def advance_turn(self, next_id: Optional[str]) -> None:
        """Hand the turn to ``next_id`` and signal that a turn happened."""
        self.active_player_id = next_id
        self.turn_counter += 1

    def all_cards(self) -> Iterator[Card]:
        """Every card currently owned by this table."""
        yield from self.deck.cards
        yield from self.discard_pile
        yield from self.dealer_hand
        yield from self.community_cards
        for player in self.players:
            yield from player.hand
            for meld in player.melds:
                yield from meld
        if self.solitaire is not None:
            yield from self.solitaire.all_cards()

    def reset_for_new_round(self) -> None:
        """Clear hands, bets and markers. Chip balances persist."""
        self.deck = Deck()
        self.discard_pile = []
        self.dealer_hand = []
        self.community_cards = []
        self.pot.reset()
        self.highest_bet = 0
        self.active_player_id = None
        self.is_game_over = False
        self.winner_id = None
        self.street = Street.PREFLOP
        self.phase = RoundPhase.BETTING
        self.solitaire = None
        for player in self.players:
            player.reset_for_new_round()

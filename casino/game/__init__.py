"""Game engine module."""
from .deck import Deck, Card, Suit, Rank, create_deck, shuffle, blackjack_score
from .errors import ActionRejected, IllegalAction, InsufficientChips, InvalidCombination, ExhaustedSource
from .player import Player, PlayerStatus, HUMAN_ID, DEALER_ID
from .pot import Pot
from .state import GameState, SolitaireState, Variant, RoundPhase, Street, PileType
from .betting import BettingRound, Action, ActionType, next_actor
from .resolution import RoundResult, resolve_round
from .scheduler import Delays, TurnScheduler
from .table import Table

__all__ = [
    "Deck",
    "Card",
    "Suit",
    "Rank",
    "create_deck",
    "shuffle",
    "blackjack_score",
    "ActionRejected",
    "IllegalAction",
    "InsufficientChips",
    "InvalidCombination",
    "ExhaustedSource",
    "Player",
    "PlayerStatus",
    "HUMAN_ID",
    "DEALER_ID",
    "Pot",
    "GameState",
    "SolitaireState",
    "Variant",
    "RoundPhase",
    "Street",
    "PileType",
    "BettingRound",
    "Action",
    "ActionType",
    "next_actor",
    "RoundResult",
    "resolve_round",
    "Delays",
    "TurnScheduler",
    "Table",
]

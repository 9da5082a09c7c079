"""Pydantic message schemas for the table protocol."""
from typing import Optional, Literal, Union
from pydantic import BaseModel, Field


# ============= Client -> Engine Messages =============

class StartSessionMessage(BaseModel):
    """Open a table for a variant."""
    type: Literal["start_session"] = "start_session"
    variant: Literal["blackjack", "poker", "texas_holdem", "rummy", "solitaire"]
    starting_balance: Optional[int] = Field(default=None, ge=0)


class PlaceBetMessage(BaseModel):
    """Place the round's bet (default bet if amount is omitted)."""
    type: Literal["place_bet"] = "place_bet"
    amount: Optional[int] = None


class ActionMessage(BaseModel):
    """Betting or Blackjack action."""
    type: Literal["action"] = "action"
    action: Literal["fold", "check", "call", "raise", "hit", "stand"]


class DrawMessage(BaseModel):
    """Rummy draw."""
    type: Literal["draw"] = "draw"
    source: Literal["stock", "discard"] = "stock"


class MeldMessage(BaseModel):
    """Rummy meld."""
    type: Literal["meld"] = "meld"
    card_ids: list[str]


class DiscardMessage(BaseModel):
    """Rummy discard."""
    type: Literal["discard"] = "discard"
    card_id: str


class ExchangeMessage(BaseModel):
    """Poker draw exchange (0-3 cards)."""
    type: Literal["exchange"] = "exchange"
    card_ids: list[str] = Field(default_factory=list, max_length=3)


class MoveCardMessage(BaseModel):
    """Solitaire drag-and-drop move."""
    type: Literal["move_card"] = "move_card"
    card_id: str
    destination: Literal["tableau", "foundation"]
    index: int


class AutoMoveMessage(BaseModel):
    """Solitaire double-click: send a card to a foundation."""
    type: Literal["auto_move"] = "auto_move"
    card_id: str


class DrawStockMessage(BaseModel):
    """Solitaire stock click."""
    type: Literal["draw_stock"] = "draw_stock"


class StartNextRoundMessage(BaseModel):
    """Play again."""
    type: Literal["start_next_round"] = "start_next_round"


class CloseSessionMessage(BaseModel):
    """Leave the table."""
    type: Literal["close_session"] = "close_session"


class GetStateMessage(BaseModel):
    """Request the current snapshot."""
    type: Literal["get_state"] = "get_state"


# Union of all client messages
ClientMessage = Union[
    StartSessionMessage,
    PlaceBetMessage,
    ActionMessage,
    DrawMessage,
    MeldMessage,
    DiscardMessage,
    ExchangeMessage,
    MoveCardMessage,
    AutoMoveMessage,
    DrawStockMessage,
    StartNextRoundMessage,
    CloseSessionMessage,
    GetStateMessage,
]


# ============= Engine -> Client Messages =============

class ErrorMessage(BaseModel):
    """Error response."""
    type: Literal["error"] = "error"
    message: str
    code: Optional[str] = None


class GameStateMessage(BaseModel):
    """Full game state update."""
    type: Literal["game_state"] = "game_state"
    table_id: str
    variant: str
    phase: str
    street: Optional[str] = None
    pot: int
    highest_bet: int
    turn_counter: int
    active_player_id: Optional[str] = None
    message: str
    is_game_over: bool
    winner_id: Optional[str] = None
    players: list[dict]
    dealer_hand: list[dict]
    community_cards: list[dict]
    discard_pile: list[dict]
    deck_count: int
    solitaire: Optional[dict] = None
    valid_actions: list[str]
    call_amount: int


class SessionStartedMessage(GameStateMessage):
    """Session opened; carries the first snapshot."""
    type: Literal["session_started"] = "session_started"
    session_id: str


class SessionEndedMessage(BaseModel):
    """Session closed."""
    type: Literal["session_ended"] = "session_ended"
    session_id: Optional[str] = None
    final_balance: int


def parse_client_message(data: dict) -> ClientMessage:
    """Parse a client message from a dict.

    Args:
        data: Message data dictionary.

    Returns:
        Parsed client message.

    Raises:
        ValueError: If message type is unknown or invalid.
    """
    if not isinstance(data, dict):
        raise ValueError("Message must be a JSON object")

    msg_type = data.get("type")

    type_map = {
        "start_session": StartSessionMessage,
        "place_bet": PlaceBetMessage,
        "action": ActionMessage,
        "draw": DrawMessage,
        "meld": MeldMessage,
        "discard": DiscardMessage,
        "exchange": ExchangeMessage,
        "move_card": MoveCardMessage,
        "auto_move": AutoMoveMessage,
        "draw_stock": DrawStockMessage,
        "start_next_round": StartNextRoundMessage,
        "close_session": CloseSessionMessage,
        "get_state": GetStateMessage,
    }

    if msg_type not in type_map:
        raise ValueError(f"Unknown message type: {msg_type}")

    return type_map[msg_type](**data)

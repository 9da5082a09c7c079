"""Protocol module for table message handling."""
from .messages import (
    ClientMessage,
    ActionMessage,
    ErrorMessage,
    GameStateMessage,
    parse_client_message,
)
from .handlers import MessageHandler

__all__ = [
    "ClientMessage",
    "ActionMessage",
    "ErrorMessage",
    "GameStateMessage",
    "parse_client_message",
    "MessageHandler",
]

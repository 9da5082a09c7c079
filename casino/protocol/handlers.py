"""Message handlers for the table protocol."""
import json
from typing import Optional, Union

from casino.game.betting import ActionType
from casino.game.errors import ActionRejected
from casino.game.rummy import DrawSource
from casino.game.state import PileType, Variant
from casino.protocol.messages import (
    parse_client_message,
    ClientMessage,
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
    ErrorMessage,
    GameStateMessage,
    SessionStartedMessage,
    SessionEndedMessage,
)
from casino.state.session_store import Session, SessionStore
from casino.utils.logger import get_logger

logger = get_logger(__name__)


class MessageHandler:
    """Routes intents to the session's table and answers with a message dict."""

    def __init__(self, store: SessionStore):
        """Initialize handler.

        Args:
            store: Where sessions live.
        """
        self.store = store

    async def handle_message(
        self,
        raw_message: Union[str, dict],
        session_id: Optional[str] = None,
    ) -> tuple[dict, Optional[str]]:
        """Handle an incoming message.

        Args:
            raw_message: JSON string or already-decoded dict.
            session_id: Current session (None before start_session).

        Returns:
            Tuple of (response dict, session id to use for the next message).
        """
        try:
            data = json.loads(raw_message) if isinstance(raw_message, str) else raw_message
            message = parse_client_message(data)
        except json.JSONDecodeError as e:
            return ErrorMessage(message=f"Invalid JSON: {e}", code="BAD_MESSAGE").model_dump(), session_id
        except ValueError as e:
            return ErrorMessage(message=str(e), code="BAD_MESSAGE").model_dump(), session_id

        if isinstance(message, StartSessionMessage):
            return await self._handle_start_session(message, session_id)

        session = self.store.get_session(session_id) if session_id else None
        if session is None:
            return ErrorMessage(
                message="No active session. Send start_session first.",
                code="NO_SESSION",
            ).model_dump(), None

        if isinstance(message, CloseSessionMessage):
            return await self._handle_close(session), None

        try:
            await self._dispatch(session, message)
        except ActionRejected as e:
            logger.debug(f"Rejected {message.type}: {e.message}")
            return ErrorMessage(message=e.message, code=e.code).model_dump(), session_id

        if session.is_closed:
            # Out of chips at start_next_round
            self.store.discard_closed()
            return SessionEndedMessage(
                session_id=session.session_id,
                final_balance=session.table.final_balance,
            ).model_dump(), None

        return GameStateMessage(**session.table.get_snapshot()).model_dump(), session_id

    async def _handle_start_session(
        self,
        message: StartSessionMessage,
        session_id: Optional[str],
    ) -> tuple[dict, Optional[str]]:
        """Start a session, closing any previous one first."""
        if session_id and self.store.get_session(session_id):
            await self.store.close_session(session_id)

        try:
            session = await self.store.create_session(
                Variant(message.variant),
                starting_balance=message.starting_balance,
            )
        except ActionRejected as e:
            logger.debug(f"Rejected start_session: {e.message}")
            return ErrorMessage(message=e.message, code=e.code).model_dump(), None

        if session.is_closed:
            # Could not cover the opening stake
            self.store.discard_closed()
            return SessionEndedMessage(
                session_id=session.session_id,
                final_balance=session.table.final_balance,
            ).model_dump(), None

        return SessionStartedMessage(
            session_id=session.session_id,
            **session.table.get_snapshot(),
        ).model_dump(), session.session_id

    async def _handle_close(self, session: Session) -> dict:
        final_balance = await self.store.close_session(session.session_id)
        return SessionEndedMessage(
            session_id=session.session_id,
            final_balance=final_balance,
        ).model_dump()

    async def _dispatch(self, session: Session, message: ClientMessage) -> None:
        """Apply an intent to the table.

        Raises:
            ActionRejected: The table refused the intent.
        """
        table = session.table

        if isinstance(message, PlaceBetMessage):
            await table.place_bet(message.amount)
        elif isinstance(message, ActionMessage):
            await table.act(ActionType(message.action))
        elif isinstance(message, DrawMessage):
            await table.draw(DrawSource(message.source))
        elif isinstance(message, MeldMessage):
            await table.meld(message.card_ids)
        elif isinstance(message, DiscardMessage):
            await table.discard(message.card_id)
        elif isinstance(message, ExchangeMessage):
            await table.exchange(message.card_ids)
        elif isinstance(message, MoveCardMessage):
            await table.move_card(message.card_id, PileType(message.destination), message.index)
        elif isinstance(message, AutoMoveMessage):
            await table.auto_move(message.card_id)
        elif isinstance(message, DrawStockMessage):
            await table.draw_stock()
        elif isinstance(message, StartNextRoundMessage):
            await table.start_next_round()
        elif isinstance(message, GetStateMessage):
            pass

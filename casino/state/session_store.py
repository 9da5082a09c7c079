"""In-process session registry."""
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from casino.game.scheduler import Delays
from casino.game.state import Variant
from casino.game.table import Table
from casino.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Session:
    """One human's visit to a table."""
    session_id: str
    table: Table
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def is_closed(self) -> bool:
        return self.table.is_closed

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "session_id": self.session_id,
            "variant": self.table.variant.value,
            "started_at": self.started_at,
            "closed": self.is_closed,
        }


class SessionStore:
    """Keeps open sessions by id. State lives only in this process."""

    def __init__(self, delays: Optional[Delays] = None, rng: Optional[random.Random] = None):
        """Initialize the store.

        Args:
            delays: Pacing delays given to every new table.
            rng: Random source shared by new tables.
        """
        self.delays = delays
        self.rng = rng
        self._sessions: dict[str, Session] = {}

    async def create_session(
        self,
        variant: Variant,
        starting_balance: Optional[int] = None,
    ) -> Session:
        """Seat a new table and start its first round.

        Args:
            variant: Game to play.
            starting_balance: Human's chips (config default if omitted).

        Returns:
            The new session.
        """
        session_id = str(uuid.uuid4())
        table = Table(
            variant,
            starting_balance=starting_balance,
            rng=self.rng,
            delays=self.delays,
            table_id=session_id[:8],
        )
        session = Session(session_id=session_id, table=table)
        await table.open()
        self._sessions[session_id] = session
        logger.info(f"Session {session_id} started: {variant.value}")
        return session

    def get_session(self, session_id: str) -> Optional[Session]:
        """Get an open session by id."""
        return self._sessions.get(session_id)

    async def close_session(self, session_id: str) -> Optional[int]:
        """Close a session and forget it.

        Returns:
            The human's final balance, or None if the session is unknown.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        final_balance = await session.table.close()
        logger.info(f"Session {session_id} ended with {final_balance} chips")
        return final_balance

    def discard_closed(self) -> int:
        """Forget sessions whose table closed on its own (human out of chips).

        Returns:
            Number of sessions removed.
        """
        closed = [sid for sid, s in self._sessions.items() if s.is_closed]
        for session_id in closed:
            del self._sessions[session_id]
        return len(closed)

    def list_sessions(self) -> list[dict]:
        return [s.to_dict() for s in self._sessions.values()]


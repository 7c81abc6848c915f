"""
SessionStore — in-memory, time-boxed records bridging the launch
handshake to the pop-up page.

Sessions are never updated.  An expired session is evicted either by
get() (which reports it as expired rather than missing) or by sweep();
the periodic sweeper only keeps memory bounded and is skipped in
stateless deployments.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from loandocs.core.logging import get_logger
from loandocs.pipeline.errors import SessionExpiredError, SessionNotFoundError

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60


def _iso(epoch_seconds: float) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class Session:
    id: str
    loan_number: str
    user_login: str
    vendor_username: str
    vendor_account_id: str
    encrypted_ticket: str
    created_at: float
    expires_at: float

    @property
    def has_ticket(self) -> bool:
        """False means the pop-up flow falls back to OAuth."""
        return bool(self.encrypted_ticket)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def to_public_dict(self) -> dict[str, Any]:
        """What the pop-up page may see (never the ticket itself)."""
        return {
            "loan_number": self.loan_number,
            "user_login": self.user_login,
            "has_ticket": self.has_ticket,
            "created_at": _iso(self.created_at),
            "expires_at": _iso(self.expires_at),
        }


class SessionStore:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(
        self,
        *,
        loan_number: str,
        user_login: str = "",
        vendor_username: str = "",
        vendor_account_id: str = "",
        encrypted_ticket: str = "",
    ) -> str:
        """Store a new session and return its id."""
        now = self._clock()
        session = Session(
            id=str(uuid.uuid4()),
            loan_number=loan_number,
            user_login=user_login,
            vendor_username=vendor_username,
            vendor_account_id=vendor_account_id,
            encrypted_ticket=encrypted_ticket,
            created_at=now,
            expires_at=now + self.ttl_seconds,
        )
        self._sessions[session.id] = session
        logger.info("Session created", session_id=session.id, loan_number=loan_number)
        return session.id

    def get(self, session_id: str) -> Session:
        """
        Return the live session.

        Raises SessionNotFoundError for unknown (or swept) ids and
        SessionExpiredError, evicting the entry, once the TTL has elapsed.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError("Session not found", session_id=session_id)

        if session.is_expired(self._clock()):
            self._sessions.pop(session_id, None)
            logger.info("Session expired on read", session_id=session_id)
            raise SessionExpiredError("Session has expired", session_id=session_id)

        return session

    def sweep(self) -> int:
        """Remove every expired session.  Returns how many were removed."""
        now = self._clock()
        expired = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
        for sid in expired:
            self._sessions.pop(sid, None)
        if expired:
            logger.info("Expired sessions swept", removed=len(expired), remaining=len(self._sessions))
        return len(expired)


async def run_sweeper(store: SessionStore, interval_seconds: float) -> None:
    """Sweep `store` every `interval_seconds` until cancelled."""
    logger.info("Session sweeper started", interval_seconds=interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        store.sweep()

"""Generic Framework launch handshake: XML request → session → pop-up URL."""

from loandocs.handshake.protocol import HandshakeProtocol, HandshakeReply, LaunchRequest
from loandocs.handshake.sessions import Session, SessionStore, run_sweeper

__all__ = [
    "HandshakeProtocol",
    "HandshakeReply",
    "LaunchRequest",
    "Session",
    "SessionStore",
    "run_sweeper",
]

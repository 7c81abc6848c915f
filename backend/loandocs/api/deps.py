"""Shared dependencies for API routes."""

from __future__ import annotations

from fastapi import Request

from loandocs.core.config import Settings
from loandocs.handshake.protocol import HandshakeProtocol
from loandocs.pipeline.orchestrator import Orchestrator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


def get_handshake(request: Request) -> HandshakeProtocol:
    return request.app.state.handshake

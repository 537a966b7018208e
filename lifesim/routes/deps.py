"""Shared lookups for route handlers."""

from fastapi import HTTPException, Request

from lifesim.session import GameSession, SessionRegistry
from lifesim.storage import MAX_SLOTS


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def check_slot(slot: int) -> int:
    if not 0 <= slot < MAX_SLOTS:
        raise HTTPException(400, f"Slot must be between 0 and {MAX_SLOTS - 1}")
    return slot


def get_session(request: Request, slot: int) -> GameSession:
    session = get_registry(request).get(check_slot(slot))
    if session is None:
        raise HTTPException(404, "Save slot is empty")
    return session

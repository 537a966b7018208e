"""Save slot listing, loading, deletion, and new games."""

from fastapi import APIRouter, HTTPException, Request

from .deps import check_slot, get_registry
from .models import NewGameBody

router = APIRouter()


@router.get("/slots")
async def list_slots(request: Request):
    """List metadata for every occupied slot."""
    registry = get_registry(request)
    await registry.flush()
    return registry.gateway.list_saves()


@router.get("/slots/{slot}")
async def get_slot(request: Request, slot: int):
    """Current character and game state of a slot."""
    session = get_registry(request).get(check_slot(slot))
    if session is None:
        raise HTTPException(404, "Save slot is empty")
    return {
        "slot": slot,
        "character": session.character,
        "game_state": session.game_state,
        "pending_event": session.pending_event,
    }


@router.delete("/slots/{slot}")
async def delete_slot(request: Request, slot: int):
    """Delete a save slot."""
    registry = get_registry(request)
    check_slot(slot)
    await registry.flush()
    registry.drop(slot)
    if not registry.gateway.delete_save(slot):
        raise HTTPException(404, "Save slot is empty")
    return {"ok": True}


@router.post("/slots/{slot}/new")
async def new_game(request: Request, slot: int, body: NewGameBody):
    """Start a new game in a slot, replacing whatever was there."""
    registry = get_registry(request)
    check_slot(slot)
    try:
        session = registry.new_game(slot, body.character, body.difficulty, body.level)
    except KeyError as e:
        raise HTTPException(400, str(e.args[0]))
    await registry.flush()
    return {"slot": slot, "character": session.character, "game_state": session.game_state}

"""Gameplay endpoints: events, choices, ticks, level completion, assets."""

from fastapi import APIRouter, HTTPException, Request

from lifesim.assets import AssetError
from lifesim.resolver import InvalidChoiceError, ResolutionInProgressError
from lifesim.stats import CharacterDeadError

from .deps import get_registry, get_session
from .models import ChoiceBody, TickBody

router = APIRouter()


@router.post("/slots/{slot}/event")
async def next_event(request: Request, slot: int):
    """Get the pending event, selecting a new one if there is none."""
    session = get_session(request, slot)
    try:
        return await session.next_event()
    except CharacterDeadError as e:
        raise HTTPException(409, str(e))


@router.delete("/slots/{slot}/event")
async def cancel_event(request: Request, slot: int):
    """Discard the pending event without applying anything."""
    session = get_session(request, slot)
    return {"cancelled": session.cancel_event()}


@router.post("/slots/{slot}/choice")
async def choose(request: Request, slot: int, body: ChoiceBody):
    """Resolve a choice for the pending event."""
    session = get_session(request, slot)
    try:
        result = await session.choose(body.choice, body.custom_text)
    except InvalidChoiceError as e:
        raise HTTPException(400, str(e))
    except (CharacterDeadError, ResolutionInProgressError) as e:
        raise HTTPException(409, str(e))
    await get_registry(request).flush()
    return result


@router.post("/slots/{slot}/tick")
async def tick(request: Request, slot: int, body: TickBody | None = None):
    """Advance one timer tick (passive assets, energy, day counter)."""
    session = get_session(request, slot)
    interval = body.interval if body else request.app.state.settings.tick_interval
    applied = session.tick(interval)
    await get_registry(request).flush()
    return {"applied": applied, "character": session.character, "game_state": session.game_state}


@router.post("/slots/{slot}/level/complete")
async def complete_level(request: Request, slot: int):
    """Complete the current level: pay its reward once and unlock the next."""
    session = get_session(request, slot)
    following = session.complete_level()
    await get_registry(request).flush()
    return {"next_level": following, "game_state": session.game_state}


@router.post("/slots/{slot}/assets/{asset_id}")
async def buy_asset(request: Request, slot: int, asset_id: str):
    """Buy an asset from the catalog."""
    session = get_session(request, slot)
    try:
        character = session.buy_asset(asset_id)
    except AssetError as e:
        raise HTTPException(400, str(e))
    except CharacterDeadError as e:
        raise HTTPException(409, str(e))
    await get_registry(request).flush()
    return character


@router.delete("/slots/{slot}/assets/{asset_id}")
async def sell_asset(request: Request, slot: int, asset_id: str):
    """Sell an owned asset at 80% of its cost."""
    session = get_session(request, slot)
    try:
        proceeds = session.sell_asset(asset_id)
    except AssetError as e:
        raise HTTPException(400, str(e))
    except CharacterDeadError as e:
        raise HTTPException(409, str(e))
    await get_registry(request).flush()
    return {"proceeds": proceeds, "character": session.character}

"""Health check and static game descriptors."""

from fastapi import APIRouter

from lifesim.assets import ASSETS
from lifesim.levels import DIFFICULTIES, LEVELS, complexity_for

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/levels")
async def list_levels():
    """Level descriptors with their complexity tier, plus difficulties."""
    return {
        "levels": [
            {**level.model_dump(), "complexity": complexity_for(level.id).name}
            for level in LEVELS.values()
        ],
        "difficulties": [d.model_dump() for d in DIFFICULTIES.values()],
    }


@router.get("/assets")
async def list_assets():
    """Purchasable asset catalog."""
    return list(ASSETS.values())

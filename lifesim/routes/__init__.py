"""FastAPI API endpoints under /api.

Endpoint groups: meta (health, level and difficulty descriptors), slots
(list, load, delete, new game), and gameplay (event, choice, tick, level
completion, assets). Gameplay endpoints are nested under /api/slots/{slot}/.
"""

from fastapi import APIRouter

from .game import router as game_router
from .meta import router as meta_router
from .slots import router as slots_router

router = APIRouter()
router.include_router(meta_router)
router.include_router(slots_router)
router.include_router(game_router)

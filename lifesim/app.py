from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from lifesim.config import Settings
from lifesim.llm import LLM
from lifesim.routes import router
from lifesim.session import SessionRegistry
from lifesim.storage import SaveGateway, SaveQueue


def create_app(
    data_dir: Path | None = None,
    settings: Settings | None = None,
    llm: LLM | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    resolved = data_dir or settings.data_dir

    registry = SessionRegistry(
        SaveQueue(SaveGateway(resolved)),
        llm=llm if llm is not None else settings.build_llm(),
        ai_timeout=settings.ai_timeout,
        judge_timeout=settings.judge_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await registry.close()

    app = FastAPI(title="Life Simulator", lifespan=lifespan)
    app.state.registry = registry
    app.state.settings = settings
    app.include_router(router, prefix="/api")
    return app

# main.py
import os
from contextlib import asynccontextmanager
from typing import Optional
import routes
from util.enums import Environment, Color
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from core.llm_client import LanguageModel
from core.vector_index import VectorIndex
from service.chat_service import ChatService
from util.constants import InternalURIs
from util.logger import init_logger


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    logger = init_logger()
    print(f"{Color.GREEN}Initializing...{Color.RESET}")
    # The artifact is fetched lazily by the first consumer: during startup the
    # static mount below is not serving yet.
    logger.info("app.start artifact=%s model=%s", fastApi.state.index.url, fastApi.state.model.model)
    print(f"{Color.BLUE}Server Started{Color.RESET}")
    try:
        yield
    finally:
        await fastApi.state.model.reset()
        print(f"{Color.RED}Server Shutdown{Color.RESET}")


def create_app(
    index: Optional[VectorIndex] = None, model: Optional[LanguageModel] = None
) -> FastAPI:
    application = FastAPI(lifespan=lifespan)
    application.state.index = index if index is not None else VectorIndex()
    application.state.model = model if model is not None else LanguageModel()
    application.state.chat = ChatService(application.state.index, application.state.model)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.ALLOWED_ORIGIN],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Accept"],
    )

    @application.get("/healthz")
    async def healthz():
        return {"ok": True}

    routes.register_routes(application)

    if os.path.isdir(settings.PUBLIC_DIR):
        application.mount(
            InternalURIs.STATIC, StaticFiles(directory=settings.PUBLIC_DIR), name="static"
        )
    return application


app: FastAPI = create_app()

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=reload)

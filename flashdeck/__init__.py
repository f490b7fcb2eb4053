from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flashdeck.config import settings
from flashdeck.db import init_all_databases


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_all_databases(settings.data_dir)
    yield


def create_app() -> FastAPI:
    application = FastAPI(
        title="Flashdeck Backend", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from flashdeck.routers import decks, health, quiz

    application.include_router(health.router)
    application.include_router(decks.router, prefix="/decks", tags=["decks"])
    application.include_router(quiz.router, prefix="/quiz", tags=["quiz"])

    return application


app = create_app()

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import AsyncSessionLocal
from app.routers import candidates, games, votes
from app.tasks.turn_closer import closer_loop

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    closer = None
    if settings.turn_closer_interval_seconds > 0:
        closer = asyncio.create_task(
            closer_loop(AsyncSessionLocal, settings.turn_closer_interval_seconds)
        )
    app.state.turn_closer = closer
    yield
    if closer is not None:
        closer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await closer


app = FastAPI(
    title="Vote Board Game",
    description="Othello played by a crowd of voters against an automated opponent",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(games.router)
app.include_router(candidates.router)
app.include_router(votes.router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}

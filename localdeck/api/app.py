"""FastAPI app, CORS, error mapping, and route registration."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging in the worker process (so pipeline INFO logs are visible with uvicorn --reload)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(name)s: %(message)s",
)

from localdeck.api.errors import register_error_handlers
from localdeck.api.state import AppState, get_state
from localdeck.config import ensure_data_dir

# Import routes after state to avoid circular imports
from localdeck.api.routes import play, playback, records, tracks

__all__ = ["app", "AppState", "get_state"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_data_dir()
    state = app.dependency_overrides.get(get_state, get_state)()
    logging.getLogger(__name__).info(
        "LocalDeck ready: %d cards bound, content in %s",
        len(state.registry.all()),
        state.store.root,
    )

    yield

    state.close()


app = FastAPI(
    title="LocalDeck API",
    description="Card-triggered jukebox: resolves printed cards to local audio and plays them on the deck",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)

app.include_router(play.router, tags=["play"])
app.include_router(tracks.router, prefix="/tracks", tags=["tracks"])
app.include_router(playback.router, prefix="/api/playback", tags=["playback"])
app.include_router(records.router, prefix="/api/records", tags=["records"])

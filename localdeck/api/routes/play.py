"""Trigger endpoint behind every printed card: GET /play?h=<cardId>&y=<fragment>."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from localdeck.api.errors import error_body
from localdeck.api.state import AppState, get_state

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/play")
def play(
    h: Optional[str] = None,
    y: Optional[str] = None,
    state: AppState = Depends(get_state),
):
    """Resolve the card (fetching via `y` on first use) and start it on the deck."""
    if not h:
        return JSONResponse(
            status_code=400, content=error_body("missing_media_hash", "missing media hash")
        )
    content_ref = state.engine.resolve(h, y)
    playback = state.deck.start(content_ref)
    logger.info("Card %s -> %s", h, content_ref)
    return {
        "ok": True,
        "card_id": h,
        "content_ref": content_ref,
        "state": playback.state.value,
    }

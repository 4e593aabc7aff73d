"""Deck start/stop and current state."""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from localdeck.api.state import AppState, get_state
from localdeck.models.playback import PlaybackState

router = APIRouter()


def _playback_to_dict(pb: PlaybackState) -> dict:
    return {
        "state": pb.state.value,
        "is_playing": pb.content_ref is not None,
        "content_ref": pb.content_ref,
        "started_at": pb.started_at,
    }


@router.get("")
def get_playback(state: AppState = Depends(get_state)):
    """Return current deck state."""
    return _playback_to_dict(state.deck.get_state())


class PlaybackStartBody(BaseModel):
    content_ref: str


@router.post("/start")
def playback_start(body: PlaybackStartBody, state: AppState = Depends(get_state)):
    """Play stored content directly, interrupting the current track."""
    return _playback_to_dict(state.deck.start(body.content_ref))


@router.post("/stop")
def playback_stop(state: AppState = Depends(get_state)):
    """Stop playback."""
    return _playback_to_dict(state.deck.stop())

"""Stored content: metadata and raw audio stream for browser playback."""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from localdeck.api.state import AppState, get_state

router = APIRouter()

# Browser-playable MIME types by stored format
_MIME_BY_FORMAT = {
    "m4a": "audio/x-m4a",  # Safari iOS compatible
    "aac": "audio/aac",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "opus": "audio/ogg",
    "flac": "audio/flac",
    "webm": "audio/webm",
}


def mime_for_format(format_: str) -> Optional[str]:
    return _MIME_BY_FORMAT.get(format_.lower())


@router.get("/{content_ref}")
def get_track(content_ref: str, state: AppState = Depends(get_state)):
    """Return stored entry metadata."""
    entry = state.store.entry(content_ref)
    return {
        "content_hash": entry.content_hash,
        "byte_size": entry.byte_size,
        "format": entry.format,
        "ref_count": state.registry.ref_count(content_ref),
    }


@router.get("/{content_ref}/stream")
def get_track_stream(content_ref: str, state: AppState = Depends(get_state)):
    """Serve the stored audio file."""
    path = state.store.path_for(content_ref)
    fmt = path.suffix.lstrip(".")
    return FileResponse(path, media_type=mime_for_format(fmt) or "application/octet-stream")

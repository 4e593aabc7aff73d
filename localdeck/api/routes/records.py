"""Card bindings: list, inspect, and print-ready play URL."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from localdeck.api.state import AppState, get_state
from localdeck.core.public_endpoint import get_play_url
from localdeck.models.track import TrackRecord

router = APIRouter()


def _record_to_dict(r: TrackRecord) -> dict:
    return {
        "card_id": r.card_id,
        "content_ref": r.content_ref,
        "source_ref": r.source_ref,
        "created_at": r.created_at,
        "last_played_at": r.last_played_at,
    }


@router.get("/")
def list_records(state: AppState = Depends(get_state)):
    """List all card bindings."""
    return [_record_to_dict(r) for r in state.registry.all()]


@router.get("/{card_id}")
def get_record(card_id: str, state: AppState = Depends(get_state)):
    """Return a card binding and whether its content is present in the store."""
    record = state.registry.lookup(card_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found")
    out = _record_to_dict(record)
    out["content_available"] = bool(record.content_ref) and state.store.exists(record.content_ref)
    return out


@router.get("/{card_id}/url")
def get_record_url(
    card_id: str,
    y: Optional[str] = None,
    state: AppState = Depends(get_state),
):
    """URL to print on a QR code / write to an NFC chip. Defaults y to the bound source."""
    record = state.registry.lookup(card_id)
    source = y if y is not None else (record.source_ref if record else None)
    return {"card_id": card_id, "url": get_play_url(card_id, source)}

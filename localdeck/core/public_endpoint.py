"""Trigger URL printed on QR codes and written to NFC chips."""
import urllib.parse
from typing import Optional

from localdeck.config import PUBLIC_BASE_URL


def get_play_url(card_id: str, source: Optional[str] = None, base_url: str = PUBLIC_BASE_URL) -> str:
    """Return {base}/play?h=<card_id>[&y=<source>].

    The query shape is frozen once cards are printed; an empty source still
    emits ``&y=``.
    """
    url = base_url.rstrip("/")
    h = urllib.parse.quote(card_id, safe="")
    if source is None:
        return f"{url}/play?h={h}"
    y = urllib.parse.quote(source, safe="")
    return f"{url}/play?h={h}&y={y}"

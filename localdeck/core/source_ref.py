"""Normalize the `y` fallback fragment into a canonical YouTube video id."""
import re
import urllib.parse
from typing import Optional

from localdeck.core.errors import UnsupportedSource

_VIDEO_ID_RE = re.compile(r"^[0-9A-Za-z_-]{11}$")
_YT_HOSTS = ("youtube.com", "youtube-nocookie.com", "youtu.be")
_PATH_PREFIXES = ("shorts", "embed", "live", "v")


def _is_video_id(value: str) -> bool:
    return bool(_VIDEO_ID_RE.match(value))


def _id_from_url(parsed: urllib.parse.ParseResult) -> Optional[str]:
    host = (parsed.hostname or "").lower()
    if not any(host == h or host.endswith("." + h) for h in _YT_HOSTS):
        return None
    params = urllib.parse.parse_qs(parsed.query)
    candidate = (params.get("v") or [None])[0]
    if candidate and _is_video_id(candidate):
        return candidate
    parts = [p for p in parsed.path.split("/") if p]
    if host.endswith("youtu.be") and parts:
        return parts[0] if _is_video_id(parts[0]) else None
    if len(parts) >= 2 and parts[0] in _PATH_PREFIXES and _is_video_id(parts[1]):
        return parts[1]
    return None


def normalize_source_ref(fragment: str) -> str:
    """Return the 11-char video id the fragment identifies.

    Accepts a bare id (optionally followed by query noise such as
    ``?si=..`` or ``&t=42``), ``watch?v=<id>``, ``youtu.be/<id>``,
    ``shorts/<id>`` and full URLs with or without scheme.
    Raises UnsupportedSource for anything else.
    """
    raw = (fragment or "").strip()
    if not raw:
        raise UnsupportedSource(fragment)

    head = re.split(r"[?&#]", raw, maxsplit=1)[0]
    if _is_video_id(head):
        return head

    if raw.startswith("watch?") or raw.startswith("/watch?"):
        raw = "https://www.youtube.com/" + raw.lstrip("/")
    elif "://" not in raw:
        raw = "https://" + raw.lstrip("/")

    video_id = _id_from_url(urllib.parse.urlparse(raw))
    if video_id is None:
        raise UnsupportedSource(fragment)
    return video_id


def source_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"

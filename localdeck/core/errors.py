"""Error taxonomy for the resolution and playback pipeline.

Each error carries a stable ``code`` so the HTTP layer can report a
distinct, diagnosable response for every failure kind.
"""


class LocalDeckError(Exception):
    """Base class for every pipeline error."""

    code = "localdeck_error"


class UnknownCard(LocalDeckError):
    """Card has no local audio and no fallback reference was supplied."""

    code = "unknown_card"

    def __init__(self, card_id: str) -> None:
        super().__init__(f"card {card_id!r} is not bound to any track and has no fallback link")
        self.card_id = card_id


class UnsupportedSource(LocalDeckError):
    """Fallback reference does not parse as a retrievable source."""

    code = "unsupported_source"

    def __init__(self, source_hint: str) -> None:
        super().__init__(f"fallback reference {source_hint!r} is not a supported source")
        self.source_hint = source_hint


class SourceUnavailable(LocalDeckError):
    """External fetch failed: network, removed video, or availability restriction."""

    code = "source_unavailable"

    def __init__(self, source_ref: str, reason: str = "") -> None:
        msg = f"source {source_ref!r} is unavailable"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.source_ref = source_ref
        self.reason = reason


class StorageError(LocalDeckError):
    """Local I/O failure in the content store or registry."""

    code = "storage_error"


class ContentNotFound(LocalDeckError):
    """No published content entry exists for the reference."""

    code = "content_not_found"

    def __init__(self, content_ref: str) -> None:
        super().__init__(f"content {content_ref} not found")
        self.content_ref = content_ref


class InvalidContentRef(LocalDeckError):
    code = "invalid_content_ref"

    def __init__(self, content_ref: str) -> None:
        super().__init__(f"invalid content reference {content_ref!r}")
        self.content_ref = content_ref


class PlaybackError(LocalDeckError):
    """The deck could not open an output stream."""

    code = "playback_error"

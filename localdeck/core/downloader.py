"""External audio retrieval via yt-dlp."""
import logging
from pathlib import Path
from typing import Protocol

import yt_dlp
from yt_dlp.utils import DownloadError, PostProcessingError

from localdeck.config import YTDLP_FORMAT
from localdeck.core.errors import SourceUnavailable
from localdeck.core.source_ref import source_url

logger = logging.getLogger(__name__)


class SourceDownloader(Protocol):
    def download(self, source_ref: str, dest_dir: Path) -> Path:
        """Download audio for a canonical source id into dest_dir; return the file."""
        ...


class YtDlpDownloader:
    """Downloads the best audio stream of a YouTube video, no transcoding."""

    def __init__(self, format_selector: str = YTDLP_FORMAT) -> None:
        self._format = format_selector

    def _options(self, dest_dir: Path) -> dict:
        return {
            "format": self._format,
            "outtmpl": str(dest_dir / "%(id)s.%(ext)s"),
            "noplaylist": True,
            "quiet": True,
            "no_warnings": True,
            "noprogress": True,
            "retries": 3,
            "fragment_retries": 3,
            "logger": logger,
        }

    def download(self, source_ref: str, dest_dir: Path) -> Path:
        url = source_url(source_ref)
        try:
            with yt_dlp.YoutubeDL(self._options(dest_dir)) as ydl:
                info = ydl.extract_info(url, download=True)
                if info is None:
                    raise SourceUnavailable(source_ref, "yt-dlp returned no info")
                if info.get("requested_downloads"):
                    requested = info["requested_downloads"][0]
                    outpath = requested.get("filepath") or requested.get("_filename")
                    if not outpath:
                        raise SourceUnavailable(source_ref, "yt-dlp reported no output file")
                else:
                    outpath = ydl.prepare_filename(info)
        except (DownloadError, PostProcessingError) as e:
            raise SourceUnavailable(source_ref, str(e)) from e
        path = Path(outpath)
        if not path.is_file():
            raise SourceUnavailable(source_ref, "download produced no file")
        return path

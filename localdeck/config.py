"""Configuration: env, data paths, public endpoint, fetcher and deck settings."""
import os
import shlex
from pathlib import Path

from dotenv import load_dotenv

# Base paths (project root = parent of localdeck package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so LOCALDECK_* overrides are set
load_dotenv(BASE_DIR / ".env")

DATA_DIR = Path(os.getenv("LOCALDECK_DATA_DIR", str(BASE_DIR / "data")))
CONTENT_DIR = DATA_DIR / "content"
TRACK_REGISTRY_PATH = DATA_DIR / "track_registry.json"

# API
API_HOST = os.getenv("LOCALDECK_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("LOCALDECK_API_PORT", "8080"))

# "Public" endpoint printed on QR codes and NFC chips, e.g. http://main-deck:8080
PUBLIC_BASE_URL = os.getenv("LOCALDECK_PUBLIC_BASE_URL", f"http://localhost:{API_PORT}")

# Fallback fetcher
FETCH_WORKERS = int(os.getenv("LOCALDECK_FETCH_WORKERS", "2"))
FETCH_TIMEOUT_SEC = float(os.getenv("LOCALDECK_FETCH_TIMEOUT_SEC", "600"))
FETCH_FAILURE_COOLDOWN_SEC = float(os.getenv("LOCALDECK_FETCH_FAILURE_COOLDOWN_SEC", "10"))
# Finished tasks kept in memory; oldest are dropped first
FETCH_MEMO_SIZE = int(os.getenv("LOCALDECK_FETCH_MEMO_SIZE", "256"))
YTDLP_FORMAT = os.getenv("LOCALDECK_YTDLP_FORMAT", "bestaudio/best")

# Deck output: external player that exits on end of track
PLAYER_CMD = shlex.split(
    os.getenv("LOCALDECK_PLAYER_CMD", "ffplay -nodisp -autoexit -loglevel error")
)

# Playback simulation (for development without speakers / ffplay)
SIMULATE_PLAYBACK = os.getenv("LOCALDECK_SIMULATE_PLAYBACK", "0").lower() in ("1", "true", "yes")


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    CONTENT_DIR.mkdir(parents=True, exist_ok=True)

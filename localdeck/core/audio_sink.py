"""Deck output: play a stored file through an external player or a simulated sink."""
import logging
import subprocess
import threading
from pathlib import Path
from typing import List, Optional, Protocol

from localdeck.config import PLAYER_CMD
from localdeck.core.errors import PlaybackError

logger = logging.getLogger(__name__)


class AudioStream(Protocol):
    def stop(self) -> None:
        """Request the stream to end. Idempotent."""
        ...

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the stream has ended; True if it has."""
        ...


class AudioSink(Protocol):
    def open(self, path: Path) -> AudioStream:
        ...


class PlayerProcess:
    """One running player process (e.g. ffplay -autoexit)."""

    def __init__(self, proc: subprocess.Popen) -> None:
        self._proc = proc

    def stop(self) -> None:
        if self._proc.poll() is not None:
            return
        self._proc.terminate()
        try:
            self._proc.wait(timeout=3)
        except subprocess.TimeoutExpired:
            logger.warning("Player pid %s ignored terminate, killing", self._proc.pid)
            self._proc.kill()
            self._proc.wait()

    def wait(self, timeout: Optional[float] = None) -> bool:
        try:
            self._proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True


class ProcessSink:
    """Spawns the configured player command with the file path appended."""

    def __init__(self, command: Optional[List[str]] = None) -> None:
        self._command = list(command or PLAYER_CMD)

    def open(self, path: Path) -> PlayerProcess:
        cmd = self._command + [str(path)]
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise PlaybackError(f"cannot start player {cmd[0]!r}: {e}") from e
        logger.debug("Started player pid %s for %s", proc.pid, path.name)
        return PlayerProcess(proc)


class SimulatedStream:
    def __init__(self, duration_sec: Optional[float]) -> None:
        self._ended = threading.Event()
        self._timer: Optional[threading.Timer] = None
        if duration_sec is not None:
            self._timer = threading.Timer(duration_sec, self._ended.set)
            self._timer.daemon = True
            self._timer.start()

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._ended.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._ended.wait(timeout)


class SimulatedSink:
    """For development without an audio device: streams last duration_sec or until stopped."""

    def __init__(self, duration_sec: Optional[float] = None) -> None:
        self._duration = duration_sec

    def open(self, path: Path) -> SimulatedStream:
        logger.info("Simulated playback of %s", path.name)
        return SimulatedStream(self._duration)

"""Round-robin rotation over the Alpha Vantage API keys listed in ``.keylist``."""
import logging
import threading
from pathlib import Path
from typing import List, Optional, Sequence

from Finance.Domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

KEYLIST_FILENAME = ".keylist"
PROJECT_ROOT = Path(__file__).resolve().parents[2]


def resolve_keylist_path(explicit: Optional[str | Path] = None) -> Path:
    """
    Locate the key list.

    An explicit path always wins. Otherwise ``.keylist`` in the working
    directory is used, falling back to the project root so the server works no
    matter where it was launched from.
    """
    if explicit:
        return Path(explicit).expanduser()

    cwd_candidate = Path.cwd() / KEYLIST_FILENAME
    if cwd_candidate.is_file():
        return cwd_candidate
    return PROJECT_ROOT / KEYLIST_FILENAME


class KeyRotator:
    """
    Hands out API keys in round-robin order.

    The pool is read once, on the first request, and kept for the lifetime of
    the object. ``keys`` may be given directly instead of a file.
    """

    def __init__(self, path: Optional[str | Path] = None, keys: Optional[Sequence[str]] = None):
        self._path = path
        self._keys: List[str] = []
        self._index = 0
        self._lock = threading.Lock()
        if keys is not None:
            self._keys = self._clean(keys)
            if not self._keys:
                raise ConfigurationError("API key list is empty")

    @staticmethod
    def _clean(lines: Sequence[str]) -> List[str]:
        return [line.strip() for line in lines if line.strip()]

    def _load(self) -> List[str]:
        path = resolve_keylist_path(self._path)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ConfigurationError(f".keylist file not found at {path}") from e
        except OSError as e:
            raise ConfigurationError(f".keylist file at {path} could not be read: {e}") from e

        keys = self._clean(content.splitlines())
        if not keys:
            raise ConfigurationError(f".keylist file at {path} is empty")
        logger.info("Loaded %d API key(s) from %s", len(keys), path)
        return keys

    @property
    def pool_size(self) -> int:
        return len(self._keys)

    def next_credential(self) -> str:
        with self._lock:
            if not self._keys:
                self._keys = self._load()

            key = self._keys[self._index]
            self._index = (self._index + 1) % len(self._keys)
            return key

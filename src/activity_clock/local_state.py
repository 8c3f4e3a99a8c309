"""
Client-local durable state for Activity Clock.

PURPOSE: Persist small client-side values independently of the server.
AI CONTEXT: The browser version kept these in localStorage; here they live in
one JSON file under the storage directory.

KEYS:
- activity_clock_last_stop: ISO instant of the cursor (next log start)
- activity_clock_vacation_days: list of 'YYYY-MM-DD' keys
- activity_clock_session: login token sent as the API session cookie

ERROR HANDLING:
- Missing file: behaves as empty state
- Corrupt JSON: logged, behaves as empty state
- Write failure: logged, get() keeps returning the in-memory value
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .config import Config
from .filesystem import RealFileSystem
from .timekeys import parse_instant, to_iso

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["LocalState"]

logger = logging.getLogger(__name__)


class LocalState:
    """
    Small key/value store backed by a single JSON file.

    Values are cached in memory after the first read; every set() writes
    the whole file. Single-owner: one client process per storage dir.
    """

    def __init__(
        self,
        storage_dir: str | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        """
        Initialize local state.

        Args:
            storage_dir: Directory for the state file. Default: Config.get_storage_dir()
            filesystem: FileSystem implementation. Default: RealFileSystem
        """
        self.storage_dir = storage_dir or Config.get_storage_dir()
        self._fs: FileSystem = filesystem or RealFileSystem()
        self.state_file = os.path.join(self.storage_dir, Config.LOCAL_STATE_FILE)
        self._cache: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._cache is not None:
            return self._cache
        try:
            raw = json.loads(self._fs.read_text(self.state_file))
            self._cache = raw if isinstance(raw, dict) else {}
        except FileNotFoundError:
            self._cache = {}
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {self.state_file}: {e}")
            self._cache = {}
        except OSError as e:
            logger.error(f"Error reading {self.state_file}: {e}")
            self._cache = {}
        return self._cache

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for key, or default."""
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """
        Store a value and write the state file through a temp file and rename.

        Args:
            key: State key.
            value: JSON-serializable value.

        Returns:
            True if the file was written. The in-memory value is updated
            either way.
        """
        state = self._load()
        state[key] = value
        try:
            self._fs.makedirs(self.storage_dir, exist_ok=True)
            tmp_path = f"{self.state_file}.tmp"
            self._fs.write_text(tmp_path, json.dumps(state, indent=2))
            self._fs.rename(tmp_path, self.state_file)
            return True
        except OSError as e:
            logger.error(f"Error writing {self.state_file}: {e}")
            return False

    # =========================================================================
    # CURSOR
    # =========================================================================

    def get_cursor(self) -> datetime | None:
        """
        Read the persisted cursor instant.

        Returns:
            Aware UTC datetime, or None when unset or unparseable.
        """
        raw = self.get(Config.CURSOR_STATE_KEY)
        if not raw:
            return None
        try:
            return parse_instant(raw)
        except (ValueError, TypeError):
            logger.warning(f"Ignoring unparseable cursor value: {raw!r}")
            return None

    def set_cursor(self, instant: datetime) -> bool:
        """Persist the cursor instant in wire format."""
        return self.set(Config.CURSOR_STATE_KEY, to_iso(instant))

"""
API credential storage and resolution.

The credential is looked up in this order:
1. A local persistent key/value store (a small JSON file) under `or_key`
2. The OPENROUTER_API_KEY environment variable
3. Nothing: callers decide whether to offer interactive setup (development)
   or fail hard (production)
"""

import json
import logging
import os
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

API_KEY_STORAGE_KEY = "or_key"
API_KEY_ENV_VAR = "OPENROUTER_API_KEY"


class CredentialStore:
    """JSON-file backed key/value store for local credentials.

    Values survive process restarts. Thread-safe for basic use.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path).expanduser()
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable credential store %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> str | None:
        """Return the stored value for `key`, or None."""
        with self._lock:
            value = self._read().get(key)
        return value if isinstance(value, str) and value.strip() else None

    def set(self, key: str, value: str) -> None:
        """Persist `value` under `key`."""
        with self._lock:
            data = self._read()
            data[key] = value
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            try:
                os.chmod(self._path, 0o600)
            except OSError:
                logger.debug("Could not restrict permissions on %s", self._path)

    def delete(self, key: str) -> bool:
        """Remove `key`. Returns True if it existed."""
        with self._lock:
            data = self._read()
            if key not in data:
                return False
            del data[key]
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            return True


def resolve_api_key(store: CredentialStore | None, env_value: str | None = None) -> str | None:
    """Resolve the LLM API key: stored value first, then the environment.

    Args:
        store: The local credential store, if any.
        env_value: Override for the environment variable (read from
            OPENROUTER_API_KEY when None).

    Returns:
        The API key, or None if no credential is configured anywhere.
    """
    if store is not None:
        stored = store.get(API_KEY_STORAGE_KEY)
        if stored:
            return stored

    if env_value is None:
        env_value = os.getenv(API_KEY_ENV_VAR)
    if env_value and env_value.strip():
        return env_value.strip()
    return None

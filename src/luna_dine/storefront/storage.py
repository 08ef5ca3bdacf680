"""Durable key/value storage for storefront state.

Each key is stored as one JSON document and always read or written whole.
"""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CART_KEY = "lunadine_cart"
FAVORITES_KEY = "lunadine_favorites"
ORDER_HISTORY_KEY = "lunadine_order_history"
LANGUAGE_KEY = "lunadine_language"
PENDING_PROMO_KEY = "pending_promo_code"


class ClientStorage:
    """JSON-file backed storage, one file per key under a directory."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        """Read a stored value.

        A missing key or a document that is not valid JSON reads as ``default``.
        """
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning(f"Discarding corrupt stored value for '{key}'")
            return default

    def set(self, key: str, value: Any) -> None:
        """Replace the stored value for a key."""
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(value, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

"""Durable local storage for the mirrored cart.

The cart is kept as one JSON document. Writes go to a temporary file that
is then renamed over the old one, so a crash never leaves half a cart.
"""

import json
import os
import tempfile
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


def empty_cart() -> dict:
    return {"id": None, "customer_id": None, "items": [], "expires_at": None, "updated_at": None}


class LocalCartStorage:
    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> dict:
        """The last saved cart, or an empty one if nothing usable is stored."""
        if not self.path.exists():
            return empty_cart()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Discarding unreadable local cart", path=str(self.path), error=str(exc))
            return empty_cart()
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            logger.warning("Discarding malformed local cart", path=str(self.path))
            return empty_cart()
        return data

    def save(self, cart: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(cart, handle)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

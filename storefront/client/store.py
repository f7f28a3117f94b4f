# storefront/client/store.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol

log = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any: ...
    def set(self, key: str, value: Any) -> None: ...
    def clear(self, key: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: Optional[dict] = None):
        self._data = dict(initial or {})

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def clear(self, key):
        self._data.pop(key, None)


class JsonFileStore:
    """All keys in one JSON object on disk. Unreadable files read as empty."""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> dict:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            log.warning("state file %s unreadable, starting empty: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
        os.replace(tmp, self.path)

    def get(self, key):
        return self._read().get(key)

    def set(self, key, value):
        data = self._read()
        data[key] = value
        self._write(data)

    def clear(self, key):
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class ClientStateRepository:
    """The one place that knows which keys hold client state."""

    ACCESS_TOKEN_KEY = "accessToken"
    CART_KEY = "cart"

    def __init__(self, store: KeyValueStore):
        self.store = store

    # ---- auth token ----
    def access_token(self) -> Optional[str]:
        tok = self.store.get(self.ACCESS_TOKEN_KEY)
        return tok or None

    def set_access_token(self, token: str) -> None:
        self.store.set(self.ACCESS_TOKEN_KEY, token)

    def clear_access_token(self) -> None:
        self.store.clear(self.ACCESS_TOKEN_KEY)

    # ---- cart ----
    def load_cart_items(self) -> list:
        raw = self.store.get(self.CART_KEY)
        if isinstance(raw, dict) and isinstance(raw.get("items"), list):
            return raw["items"]
        return []

    def save_cart_items(self, items: list) -> None:
        self.store.set(self.CART_KEY, {"items": items})

    def clear_cart(self) -> None:
        self.store.clear(self.CART_KEY)

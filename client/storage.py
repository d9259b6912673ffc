from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from client.models import Message


CHAT_STORAGE_KEY = "gemini-chat-history"

logger = logging.getLogger("gemini_chat.client")

_history_adapter = TypeAdapter(List[Message])


class SlotStore:
    """Key/value slots backed by one JSON file; values are serialized strings."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable storage file %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: not a mapping", self._path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as exc:
            logger.warning("Could not write storage file %s: %s", self._path, exc)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


class HistorySlot:
    """The single persisted copy of the conversation history."""

    def __init__(self, store: SlotStore, key: str = CHAT_STORAGE_KEY):
        self._store = store
        self._key = key

    def load(self) -> List[Message]:
        raw = self._store.get_item(self._key)
        if not raw:
            return []
        try:
            return _history_adapter.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding invalid saved history: %s", exc)
            return []

    def save(self, history: Sequence[Message]) -> None:
        self._store.set_item(
            self._key, _history_adapter.dump_json(list(history)).decode("utf-8")
        )

    def clear(self) -> None:
        self._store.remove_item(self._key)

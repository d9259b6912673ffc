from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pytest

from client.storage import HistorySlot, SlotStore


@pytest.fixture()
def slot(tmp_path: Path) -> HistorySlot:
    return HistorySlot(SlotStore(tmp_path / "storage.json"))


@pytest.fixture()
def history_payload() -> List[Dict[str, Any]]:
    return [
        {"role": "user", "content": "Hello"},
        {"role": "model", "content": "Hi there"},
        {"role": "user", "content": "How are you?"},
    ]

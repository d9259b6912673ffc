"""Stand-ins shared by the client tests."""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence, Union

from client.models import Message
from client.relay_client import RelayRequestError


Outcome = Union[str, None, Exception]


def msg(role: str, content: str) -> Message:
    return Message(role=role, content=content)


def server_error() -> RelayRequestError:
    return RelayRequestError("Server responded with status: 500")


class ScriptedRelay:
    """Replays a fixed list of outcomes in place of ``RelayClient``."""

    def __init__(self, *outcomes: Outcome):
        self.outcomes: List[Outcome] = list(outcomes)
        self.calls: List[List[Message]] = []

    async def chat(self, history: Sequence[Message]) -> Optional[str]:
        self.calls.append(list(history))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class GatedRelay(ScriptedRelay):
    """Holds every reply until ``gate`` is set."""

    def __init__(self, *outcomes: Outcome):
        super().__init__(*outcomes)
        self.gate = asyncio.Event()

    async def chat(self, history: Sequence[Message]) -> Optional[str]:
        self.calls.append(list(history))
        await self.gate.wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

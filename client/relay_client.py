from __future__ import annotations

from typing import Optional, Sequence

import httpx

from client.models import Message


CHAT_PATH = "/api/chat"


class RelayRequestError(RuntimeError):
    pass


class RelayClient:
    """Talks to the ``/api/chat`` relay. One POST per exchange, no retries."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 90.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None

    async def chat(self, history: Sequence[Message]) -> Optional[str]:
        payload = {"messages": [m.model_dump() for m in history]}
        try:
            response = await self._client.post(CHAT_PATH, json=payload)
        except httpx.HTTPError as exc:
            raise RelayRequestError(f"Chat request failed: {exc!r}") from exc

        if not response.is_success:
            raise RelayRequestError(f"Server responded with status: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise RelayRequestError(f"Invalid JSON from server: {exc}") from exc

        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, str) or not result:
            return None
        return result

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RelayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

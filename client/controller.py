from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from client import state as chat
from client.models import Message
from client.relay_client import RelayClient, RelayRequestError
from client.render import (
    BeginTyping,
    EndTyping,
    Instruction,
    ScrollToBottom,
    SetBubbleText,
    TypeText,
    format_markdown,
)
from client.storage import HistorySlot
from client.transcript import View
from client.typewriter import TypingEngine


logger = logging.getLogger("gemini_chat.client")


class ChatController:
    """Owns the chat state and drives the view, the relay and the saved slot.

    The state itself only changes through the pure functions in
    ``client.state``; this class performs the side effects they ask for.
    """

    def __init__(
        self,
        relay: RelayClient,
        slot: HistorySlot,
        view: View,
        typing: Optional[TypingEngine] = None,
    ):
        self._relay = relay
        self._slot = slot
        self._view = view
        self._typing = typing or TypingEngine()
        self._state = chat.ChatState()

    @property
    def state(self) -> chat.ChatState:
        return self._state

    @property
    def history(self) -> List[Message]:
        return list(self._state.history)

    def load(self) -> None:
        saved = self._slot.load()
        transition = chat.load(self._state, saved)
        self._state = transition.state
        self._apply_now(transition.instructions)
        logger.debug("Loaded %s saved messages", len(saved))

    async def submit(self, text: str) -> None:
        transition = chat.submit(self._state, text)
        if not transition.accepted:
            return
        await self._run(transition)

    async def retry(self, bubble_id: Optional[str] = None) -> None:
        bubble_id = bubble_id or chat.latest_failure(self._state)
        if bubble_id is None:
            return
        transition = chat.retry(self._state, bubble_id)
        if not transition.accepted:
            return
        logger.info("Retrying failed message in %s", bubble_id)
        await self._run(transition)

    def clear(self) -> None:
        self._typing.cancel_all()
        transition = chat.clear(self._state)
        self._state = transition.state
        self._slot.clear()
        self._apply_now(transition.instructions)

    async def _run(self, transition: chat.Transition) -> None:
        while True:
            self._commit(transition)
            await self._dispatch(transition.instructions)
            request = transition.request
            if request is None:
                return
            transition = await self._exchange(request)

    async def _exchange(self, request: chat.PendingRequest) -> chat.Transition:
        try:
            text = await self._relay.chat(request.history)
        except RelayRequestError as exc:
            logger.warning("Error fetching chat response: %s", exc)
            return chat.fail(self._state, request)
        except Exception:
            logger.exception("Unexpected failure while fetching chat response")
            return chat.fail(self._state, request)

        if request.epoch != self._state.epoch:
            logger.info("Discarding response that arrived after the chat was cleared")
        return chat.succeed(self._state, request, text)

    def _commit(self, transition: chat.Transition) -> None:
        previous = self._state.history
        self._state = transition.state
        if self._state.history != previous:
            self._slot.save(self._state.history)

    def _apply_now(self, instructions: Iterable[Instruction]) -> None:
        for instruction in instructions:
            self._view.apply(instruction)

    async def _dispatch(self, instructions: Iterable[Instruction]) -> None:
        for instruction in instructions:
            if isinstance(instruction, TypeText):
                await self._type(instruction)
            else:
                self._view.apply(instruction)

    async def _type(self, instruction: TypeText) -> None:
        bubble_id = instruction.bubble_id

        def progress(prefix: str) -> None:
            self._view.apply(SetBubbleText(bubble_id, prefix))
            self._view.apply(ScrollToBottom())

        try:
            self._view.apply(BeginTyping(bubble_id))
            finished = await self._typing.type(bubble_id, instruction.text, progress)
            if finished:
                html = format_markdown(instruction.text) if instruction.markdown else None
                self._view.apply(EndTyping(bubble_id, html=html))
        finally:
            # After a clear the state is already idle and this is a no-op.
            done = chat.finish_typing(self._state, bubble_id)
            self._state = done.state
            self._apply_now(done.instructions)

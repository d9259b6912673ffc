"""Pure chat state transitions.

Each function takes the current ``ChatState`` and returns a ``Transition``:
the next state, the render instructions for the view and, when a relay call
is needed, the request to send. Nothing here performs I/O.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from client.models import Message, bubble_role
from client.render import (
    FAILURE_TEXT,
    NO_RESPONSE_TEXT,
    THINKING_TEXT,
    AppendBubble,
    ClearInput,
    ClearMessages,
    DisableRetry,
    FocusInput,
    Instruction,
    SetBubbleText,
    SetControls,
    ShowError,
    TypeText,
)


History = Tuple[Message, ...]


class Phase(enum.Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    TYPING = "typing"


@dataclass(frozen=True)
class PendingRequest:
    user_text: str
    bubble_id: str
    base_history: History
    epoch: int
    retry: bool = False

    @property
    def history(self) -> History:
        """What gets sent to the relay: the base plus the user turn."""
        return self.base_history + (Message(role="user", content=self.user_text),)


@dataclass(frozen=True)
class ChatState:
    phase: Phase = Phase.IDLE
    history: History = ()
    pending: Optional[PendingRequest] = None
    failures: Dict[str, str] = field(default_factory=dict)
    typing_bubble: Optional[str] = None
    epoch: int = 0
    next_id: int = 1


@dataclass(frozen=True)
class Transition:
    state: ChatState
    instructions: List[Instruction] = field(default_factory=list)
    request: Optional[PendingRequest] = None

    @property
    def accepted(self) -> bool:
        return bool(self.instructions) or self.request is not None


def _new_id(state: ChatState) -> Tuple[str, ChatState]:
    return f"m{state.next_id}", replace(state, next_id=state.next_id + 1)


def _is_current(state: ChatState, request: PendingRequest) -> bool:
    return request.epoch == state.epoch and state.pending == request


def load(state: ChatState, history: Sequence[Message]) -> Transition:
    instructions: List[Instruction] = []
    for message in history:
        bubble_id, state = _new_id(state)
        instructions.append(AppendBubble(bubble_id, bubble_role(message.role), message.content))
    return Transition(replace(state, history=tuple(history)), instructions)


def submit(state: ChatState, text: str) -> Transition:
    user_text = (text or "").strip()
    if not user_text or state.phase is not Phase.IDLE:
        return Transition(state)

    user_id, state = _new_id(state)
    bot_id, state = _new_id(state)
    request = PendingRequest(
        user_text=user_text,
        bubble_id=bot_id,
        base_history=state.history,
        epoch=state.epoch,
    )
    state = replace(
        state,
        phase=Phase.AWAITING_RESPONSE,
        history=request.history,
        pending=request,
    )
    return Transition(
        state,
        [
            SetControls(enabled=False),
            AppendBubble(user_id, "user", user_text),
            ClearInput(),
            AppendBubble(bot_id, "bot", THINKING_TEXT, thinking=True),
        ],
        request,
    )


def succeed(state: ChatState, request: PendingRequest, text: Optional[str]) -> Transition:
    if not _is_current(state, request):
        return Transition(state)

    state = replace(state, phase=Phase.IDLE, pending=None)
    if not text:
        # Transport succeeded; keep the user turn, nothing to retry.
        return Transition(
            state,
            [
                SetBubbleText(request.bubble_id, NO_RESPONSE_TEXT),
                SetControls(enabled=True),
                FocusInput(),
            ],
        )

    # Stays busy until the reply has been typed out; see finish_typing.
    state = replace(
        state,
        phase=Phase.TYPING,
        typing_bubble=request.bubble_id,
        history=state.history + (Message(role="model", content=text),),
    )
    return Transition(state, [TypeText(request.bubble_id, text, markdown=True)])


def finish_typing(state: ChatState, bubble_id: str) -> Transition:
    if state.phase is not Phase.TYPING or state.typing_bubble != bubble_id:
        return Transition(state)

    state = replace(state, phase=Phase.IDLE, typing_bubble=None)
    return Transition(state, [SetControls(enabled=True), FocusInput()])


def fail(state: ChatState, request: PendingRequest) -> Transition:
    if not _is_current(state, request):
        return Transition(state)

    failures = dict(state.failures)
    failures[request.bubble_id] = request.user_text
    state = replace(
        state,
        phase=Phase.IDLE,
        pending=None,
        history=request.base_history,
        failures=failures,
    )
    return Transition(
        state,
        [
            ShowError(request.bubble_id, FAILURE_TEXT, retry=True),
            SetControls(enabled=True),
            FocusInput(),
        ],
    )


def retry(state: ChatState, bubble_id: str) -> Transition:
    if state.phase is not Phase.IDLE or bubble_id not in state.failures:
        return Transition(state)

    failures = dict(state.failures)
    user_text = failures.pop(bubble_id)
    request = PendingRequest(
        user_text=user_text,
        bubble_id=bubble_id,
        base_history=state.history,
        epoch=state.epoch,
        retry=True,
    )
    state = replace(
        state,
        phase=Phase.AWAITING_RESPONSE,
        history=request.history,
        pending=request,
        failures=failures,
    )
    return Transition(
        state,
        [
            DisableRetry(bubble_id),
            SetBubbleText(bubble_id, THINKING_TEXT, thinking=True),
        ],
        request,
    )


def clear(state: ChatState) -> Transition:
    state = replace(
        state,
        phase=Phase.IDLE,
        history=(),
        pending=None,
        failures={},
        typing_bubble=None,
        epoch=state.epoch + 1,
    )
    return Transition(state, [ClearMessages(), SetControls(enabled=True), FocusInput()])


def latest_failure(state: ChatState) -> Optional[str]:
    """Bubble id of the most recent failed exchange, if any."""
    if not state.failures:
        return None
    return next(reversed(state.failures))

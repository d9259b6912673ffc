from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from client.render import (
    AppendBubble,
    BeginTyping,
    ClearInput,
    ClearMessages,
    DisableRetry,
    EndTyping,
    FocusInput,
    Instruction,
    ScrollToBottom,
    SetBubbleText,
    SetControls,
    ShowError,
)


class View(Protocol):
    def apply(self, instruction: Instruction) -> None: ...


@dataclass
class Bubble:
    bubble_id: str
    role: str
    text: str
    html: Optional[str] = None
    thinking: bool = False
    typing: bool = False
    error: bool = False
    retry_enabled: bool = False


class Transcript:
    """In-memory chat view: the bubbles, the input box and the send controls."""

    def __init__(self) -> None:
        self.bubbles: List[Bubble] = []
        self._index: Dict[str, Bubble] = {}
        self.controls_enabled = True
        self.input_value = ""
        self.focused = False
        self.scroll_requests = 0

    def bubble(self, bubble_id: str) -> Bubble:
        return self._index[bubble_id]

    def get(self, bubble_id: str) -> Optional[Bubble]:
        return self._index.get(bubble_id)

    def apply(self, instruction: Instruction) -> None:
        if isinstance(instruction, AppendBubble):
            bubble = Bubble(
                bubble_id=instruction.bubble_id,
                role=instruction.role,
                text=instruction.text,
                thinking=instruction.thinking,
            )
            self.bubbles.append(bubble)
            self._index[bubble.bubble_id] = bubble
            self.scroll_requests += 1
        elif isinstance(instruction, SetBubbleText):
            bubble = self._index.get(instruction.bubble_id)
            if bubble is not None:
                bubble.text = instruction.text
                bubble.html = instruction.html
                bubble.thinking = instruction.thinking
                bubble.error = False
        elif isinstance(instruction, BeginTyping):
            bubble = self._index.get(instruction.bubble_id)
            if bubble is not None:
                bubble.text = ""
                bubble.html = None
                bubble.thinking = False
                bubble.error = False
                bubble.typing = True
        elif isinstance(instruction, EndTyping):
            bubble = self._index.get(instruction.bubble_id)
            if bubble is not None:
                bubble.typing = False
                bubble.html = instruction.html
        elif isinstance(instruction, ShowError):
            bubble = self._index.get(instruction.bubble_id)
            if bubble is not None:
                bubble.text = instruction.text
                bubble.html = None
                bubble.thinking = False
                bubble.typing = False
                bubble.error = True
                bubble.retry_enabled = instruction.retry
        elif isinstance(instruction, DisableRetry):
            bubble = self._index.get(instruction.bubble_id)
            if bubble is not None:
                bubble.retry_enabled = False
        elif isinstance(instruction, ClearMessages):
            self.bubbles.clear()
            self._index.clear()
        elif isinstance(instruction, SetControls):
            self.controls_enabled = instruction.enabled
        elif isinstance(instruction, ClearInput):
            self.input_value = ""
        elif isinstance(instruction, FocusInput):
            self.focused = True
        elif isinstance(instruction, ScrollToBottom):
            self.scroll_requests += 1

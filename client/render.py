"""Render instructions emitted by the chat state transitions.

A view applies these in order; nothing here touches a UI toolkit.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Optional, Union


THINKING_TEXT = "Thinking..."
NO_RESPONSE_TEXT = "Sorry, no response received."
FAILURE_TEXT = "Failed to get response from server."

_BOLD = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)
_ITALIC = re.compile(r"\*(.+?)\*", re.DOTALL)


@dataclass(frozen=True)
class AppendBubble:
    bubble_id: str
    role: str  # "user" or "bot"
    text: str
    thinking: bool = False


@dataclass(frozen=True)
class SetBubbleText:
    bubble_id: str
    text: str
    html: Optional[str] = None
    thinking: bool = False


@dataclass(frozen=True)
class TypeText:
    """Animate ``text`` into the bubble; handled by the typing engine."""

    bubble_id: str
    text: str
    markdown: bool = False


@dataclass(frozen=True)
class BeginTyping:
    bubble_id: str


@dataclass(frozen=True)
class EndTyping:
    bubble_id: str
    html: Optional[str] = None


@dataclass(frozen=True)
class ShowError:
    bubble_id: str
    text: str
    retry: bool = True


@dataclass(frozen=True)
class DisableRetry:
    bubble_id: str


@dataclass(frozen=True)
class ClearMessages:
    pass


@dataclass(frozen=True)
class SetControls:
    enabled: bool


@dataclass(frozen=True)
class ClearInput:
    pass


@dataclass(frozen=True)
class FocusInput:
    pass


@dataclass(frozen=True)
class ScrollToBottom:
    pass


Instruction = Union[
    AppendBubble,
    SetBubbleText,
    TypeText,
    BeginTyping,
    EndTyping,
    ShowError,
    DisableRetry,
    ClearMessages,
    SetControls,
    ClearInput,
    FocusInput,
    ScrollToBottom,
]


def format_markdown(text: str) -> str:
    """Convert the supported markdown subset to HTML.

    Only ``**bold**``, ``*italic*`` and line breaks are recognised. The text is
    escaped first, so markup in the model reply is shown literally.
    """
    out = html.escape(text, quote=False)
    out = _BOLD.sub(r"<strong>\1</strong>", out)
    out = _ITALIC.sub(r"<em>\1</em>", out)
    return out.replace("\r\n", "\n").replace("\n", "<br>")

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


Role = Literal["user", "model"]


class Message(BaseModel):
    """One conversation turn. ``model`` is the role Gemini uses for replies."""

    model_config = {"frozen": True}

    role: Role = Field(..., description="'user' or 'model'")
    content: str


def bubble_role(role: str) -> str:
    return "bot" if role == "model" else "user"

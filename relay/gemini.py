from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from config.settings import Settings, get_settings


class RelayError(RuntimeError):
    """Base class for failures while talking to the model."""


class ModelUnavailableError(RelayError):
    pass


class ModelTimeoutError(RelayError):
    pass


class ModelCallError(RelayError):
    pass


class ExtractionError(RelayError):
    pass


def build_llm(settings: Optional[Settings] = None) -> ChatGoogleGenerativeAI:
    settings = settings or get_settings()
    if not settings.gemini_api_key:
        raise ModelUnavailableError(
            "GEMINI_API_KEY not set. Please configure it in environment or .env"
        )

    options: Dict[str, Any] = {}
    if settings.temperature is not None:
        options["temperature"] = settings.temperature
    if settings.top_p is not None:
        options["top_p"] = settings.top_p

    # Retries are the caller's decision, never this layer's.
    return ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=settings.gemini_api_key,
        timeout=settings.model_timeout,
        max_retries=0,
        **options,
    )


def to_lc_messages(history: List[dict]) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    for item in history:
        role = item.get("role")
        content = item.get("content") or ""
        if role == "user":
            messages.append(HumanMessage(content=content))
        elif role == "model":
            messages.append(AIMessage(content=content))
        else:
            raise ValueError(f"Unsupported message role: {role!r}")
    return messages


def extract_text(response: Any) -> str:
    content = getattr(response, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks: List[str] = []
        for part in content:
            if isinstance(part, str):
                chunks.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                chunks.append(part["text"])
        return "".join(chunks)
    raise ExtractionError(
        f"Unable to extract text from model response of type {type(response).__name__}"
    )


async def generate_reply(history: List[dict], settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    llm = build_llm(settings)
    messages = to_lc_messages(history)

    try:
        response = await asyncio.wait_for(llm.ainvoke(messages), timeout=settings.model_timeout)
    except asyncio.TimeoutError as exc:
        raise ModelTimeoutError(
            f"Model did not respond within {settings.model_timeout:g} seconds"
        ) from exc
    except Exception as exc:
        raise ModelCallError(str(exc)) from exc

    return extract_text(response)

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from pydantic import BaseModel, Field, field_validator

from client.models import Message
from config.settings import get_settings
from relay.gemini import RelayError, generate_reply


settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="[%(asctime)s] %(levelname)s - %(message)s",
)
logger = logging.getLogger("gemini_chat")

app = FastAPI(
    title="Gemini Flash API",
    version="1.0.0",
    description="A simple API to interact with the Google Gemini API",
    docs_url="/api-docs",
)

# CORS: allow local frontend during development
if settings.app_env.lower() in {"dev", "development", "local"}:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class ChatRequest(BaseModel):
    messages: List[Message] = Field(
        ...,
        description="An array of message objects, each with a role and content.",
    )

    @field_validator("messages", mode="before")
    @classmethod
    def _require_array(cls, value: Any) -> Any:
        if not isinstance(value, list):
            raise ValueError("messages must be an array")
        return value


class ChatResponse(BaseModel):
    result: str = Field(..., description="The AI's response text.")


class ErrorResponse(BaseModel):
    error: str


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "invalid request body"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = _describe_validation_error(exc)
    logger.warning("Rejected chat payload: %s", detail)
    return JSONResponse(status_code=400, content={"error": detail})


@app.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def chat(req: ChatRequest) -> Any:
    try:
        logger.info(
            "Incoming chat: model=%s turns=%s key_set=%s",
            settings.gemini_model,
            len(req.messages),
            bool(settings.gemini_api_key),
        )
        text = await generate_reply([m.model_dump() for m in req.messages])
        logger.info("Model responded with %s chars", len(text))
        return {"result": text}
    except RelayError as e:
        logger.error("Relay failed: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e)})
    except Exception as e:
        logger.exception("Chat processing failed: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e)})


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


def run() -> None:
    import uvicorn

    logger.info("Server is ready on http://%s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()

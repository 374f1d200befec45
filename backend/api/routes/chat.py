"""
Chat API routes.

Thin proxy in front of the chat-completion provider. Every failure, including
an unreadable body, is answered as {"error": ...}.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from services.chat_completion import (
    ChatConfigError,
    ChatRequestError,
    ChatUpstreamError,
    get_default_chat_service,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    prompt: Optional[str] = None


class ChatResponse(BaseModel):
    text: str


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post(
    "/chat",
    response_model=ChatResponse,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": ChatRequest.model_json_schema()}},
        }
    },
)
async def chat(request: Request):
    """Generate text for a prompt; failures come back as {"error": ...}."""
    service = get_default_chat_service()
    try:
        service.ensure_configured()
    except ChatConfigError as exc:
        logger.error("Chat proxy misconfigured: %s", exc)
        return _error(500, str(exc))

    try:
        body = await request.json()
    except ValueError:
        return _error(400, "Request body must be valid JSON")
    try:
        payload = ChatRequest.model_validate(body)
    except ValidationError:
        return _error(400, "Request body must be a JSON object with a string 'prompt'")

    try:
        text = await run_in_threadpool(service.complete, payload.prompt)
    except ChatConfigError as exc:
        return _error(500, str(exc))
    except ChatRequestError as exc:
        return _error(400, str(exc))
    except ChatUpstreamError as exc:
        return _error(500, str(exc))
    return ChatResponse(text=text)

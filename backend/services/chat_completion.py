"""
Chat completion pass-through.

Sends a single user prompt to an OpenAI-compatible chat endpoint (Groq by
default) and returns the generated text.
"""
import logging
from typing import Optional

from openai import OpenAI

from settings import settings

logger = logging.getLogger(__name__)


class ChatError(Exception):
    """Base class for chat proxy failures."""


class ChatConfigError(ChatError):
    """The provider credential is not configured."""


class ChatRequestError(ChatError):
    """The caller sent an unusable request (e.g. empty prompt)."""


class ChatUpstreamError(ChatError):
    """The provider call failed."""


class ChatCompletionService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        self.api_key = settings.GROQ_API_KEY if api_key is None else api_key
        self.model = model or settings.CHAT_MODEL
        self.base_url = base_url or settings.CHAT_BASE_URL
        self._client: Optional[OpenAI] = None

    def ensure_configured(self) -> None:
        if not self.api_key:
            raise ChatConfigError("GROQ_API_KEY is not defined in environment variables")

    def _get_client(self) -> OpenAI:
        self.ensure_configured()
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def complete(self, prompt: Optional[str]) -> str:
        client = self._get_client()
        if not prompt or not str(prompt).strip():
            raise ChatRequestError("Prompt is required")

        try:
            completion = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as exc:
            logger.error("Error generating content: %s", exc)
            raise ChatUpstreamError(f"Failed to generate content: {exc}") from exc

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""


_default_chat_service: Optional[ChatCompletionService] = None


def get_default_chat_service() -> ChatCompletionService:
    global _default_chat_service
    if _default_chat_service is None:
        _default_chat_service = ChatCompletionService()
    return _default_chat_service

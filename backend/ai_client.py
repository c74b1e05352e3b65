"""
Weekly Rhythm - OpenAI-Compatible Chat Client
Thin wrapper used by the reminder parser. Works against OpenAI, Ollama or any
server that speaks the chat completions API.
"""

import time
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from openai import OpenAI, APIConnectionError, APITimeoutError, RateLimitError

from config import get_ai_config, AIConfig
from logger import get_logger

logger = get_logger(__name__)

# Worth another attempt; auth, unknown model and bad requests are raised at once.
TRANSIENT_ERRORS = (RateLimitError, APITimeoutError, APIConnectionError)

Message = Dict[str, str]


def with_backoff(func: Callable):
    """Retry transient failures with exponential backoff, sized by the client's config."""
    @wraps(func)
    def wrapper(self: "AIClient", *args, **kwargs):
        for attempt in range(1, self.max_retries + 1):
            try:
                return func(self, *args, **kwargs)
            except TRANSIENT_ERRORS as e:
                if attempt == self.max_retries:
                    logger.error(f"{type(e).__name__} from {self.base_url}, giving up after {attempt} attempts")
                    raise
                wait = self.retry_delay * (2 ** (attempt - 1))
                logger.warning(f"{type(e).__name__} from {self.base_url}, retrying in {wait:.1f}s ({attempt}/{self.max_retries})")
                time.sleep(wait)
    return wrapper


class AIClient:
    """
    Usage:
        client = AIClient()  # settings from AI_* env vars / .env
        reply = client.chat([{"role": "user", "content": "Hi"}], json_mode=True)
        reply["content"]
    """

    def __init__(self, config: Optional[AIConfig] = None, client: Optional[OpenAI] = None):
        cfg = config or get_ai_config()

        self.base_url = cfg.api_base_url
        self.model = cfg.model_name
        self.temperature = cfg.temperature
        self.max_tokens = cfg.max_tokens
        self.max_retries = cfg.max_retries
        self.retry_delay = cfg.retry_delay_seconds

        # Retries are ours; local servers accept any key.
        self._client = client or OpenAI(
            base_url=cfg.api_base_url,
            api_key=cfg.api_key or "not-needed",
            timeout=cfg.timeout_seconds,
            max_retries=0,
        )
        logger.info(f"AIClient ready: {self.model} at {self.base_url}")

    @with_backoff
    def chat(self, messages: List[Message], json_mode: bool = False) -> Dict[str, Any]:
        """One completion. Returns content, finish_reason and total_tokens."""
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        response = self._client.chat.completions.create(**request)
        choice = response.choices[0]
        return {
            "content": choice.message.content,
            "finish_reason": choice.finish_reason,
            "total_tokens": response.usage.total_tokens if response.usage else 0,
        }


# ============================================
# SHARED INSTANCE
# ============================================

_client: Optional[AIClient] = None


def get_ai_client() -> AIClient:
    global _client
    if _client is None:
        _client = AIClient()
    return _client


def reset_ai_client():
    """Forget the shared client so the next call picks up changed AI_* settings."""
    global _client
    _client = None

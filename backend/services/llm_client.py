"""LLM Client for Groq API integration."""
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from config import (
    GROQ_API_KEY,
    CHAT_MODEL,
    CHAT_MAX_TOKENS,
    CHAT_TEMPERATURE,
    CHAT_TIMEOUT_SECONDS,
)
from services.errors import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(ProviderError):
    """Chat provider failure with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for streaming chat completions from the Groq API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = CHAT_MODEL,
        timeout: float = CHAT_TIMEOUT_SECONDS
    ):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Default chat model
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.client = Groq(api_key=self.api_key, timeout=timeout)
        logger.info(f"LLMClient initialized with model: {model}")

    def generate_stream(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = CHAT_MAX_TOKENS,
        temperature: float = CHAT_TEMPERATURE
    ) -> Iterator[Dict[str, Any]]:
        """
        Stream a chat completion.

        Yields:
            {"type": "token", "content": str} for each content delta, then one
            {"type": "metadata", "data": {...}} with latency and finish reason

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        model = model or self.model
        start_time = time.time()
        finish_reason = None
        token_events = 0

        try:
            logger.debug(f"Streaming response with model: {model}")
            stream = self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                stream=True
            )

            for chunk in stream:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta.content if choice.delta else None
                if delta:
                    token_events += 1
                    yield {"type": "token", "content": delta}
                if choice.finish_reason:
                    finish_reason = choice.finish_reason

        except RateLimitError as e:
            raise self._error(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                model, start_time, e, retry_after=60
            )
        except AuthenticationError as e:
            raise self._error(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                model, start_time, e
            )
        except APITimeoutError as e:
            raise self._error(
                "TIMEOUT_ERROR",
                "Request timed out. Please try again.",
                model, start_time, e
            )
        except APIError as e:
            raise self._error("API_ERROR", f"Groq API error: {e}", model, start_time, e)
        except Exception as e:
            raise self._error(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {e}",
                model, start_time, e, error_type=type(e).__name__
            )

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Streamed response: model={model}, deltas={token_events}, "
            f"finish_reason={finish_reason}, latency={latency_ms}ms"
        )
        yield {
            "type": "metadata",
            "data": {
                "model_used": model,
                "latency_ms": latency_ms,
                "finish_reason": finish_reason,
            }
        }

    @staticmethod
    def _error(
        code: str,
        message: str,
        model: str,
        start_time: float,
        original: Exception,
        **extra: Any
    ) -> LLMClientError:
        """Build (and log) the structured error for a failed request."""
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": model,
                "latency_ms": latency_ms,
                "original_error": str(original),
                **extra,
            }
        )
        logger.error(
            f"{code}: model={model}, latency={latency_ms}ms, error={original}",
            exc_info=original,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)

"""Chat turn orchestration: validation, retrieval, prompting and streaming."""
import logging
import time
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import tiktoken

from models.api import ChatMessage
from services.errors import ProviderError, ValidationError
from services.llm_client import LLMClient
from services.prompt_builder import build_system_prompt
from services.retrieval_engine import RetrievalEngine
from config import (
    MAX_MESSAGE_LENGTH,
    MAX_HISTORY_MESSAGES,
    PROMPT_TOKEN_BUDGET,
    CHAT_TIMEOUT_SECONDS,
    PRACTICE_PHONE,
)

logger = logging.getLogger(__name__)

TokenCounter = Callable[[str], int]


def tiktoken_counter(encoding_name: str = "o200k_base") -> TokenCounter:
    """Token counter backed by a tiktoken encoding (o200k_base is close enough for Llama 3)."""
    encoder = tiktoken.get_encoding(encoding_name)
    return lambda text: len(encoder.encode(text))


class ChatService:
    """Runs one chat turn and produces the event stream sent to the widget."""

    def __init__(
        self,
        retrieval_engine: RetrievalEngine,
        llm_client: LLMClient,
        token_counter: Optional[TokenCounter] = None,
        max_message_length: int = MAX_MESSAGE_LENGTH,
        max_history: int = MAX_HISTORY_MESSAGES,
        prompt_token_budget: int = PROMPT_TOKEN_BUDGET,
        timeout: float = CHAT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.retrieval_engine = retrieval_engine
        self.llm_client = llm_client
        self.token_counter = token_counter
        self.max_message_length = max_message_length
        self.max_history = max_history
        self.prompt_token_budget = prompt_token_budget
        self.timeout = timeout
        self.clock = clock
        self.error_message = (
            "Sorry, I couldn't complete that answer. Please try again, or call us on "
            f"{PRACTICE_PHONE} if you need help right away."
        )

    def prepare(
        self,
        message: str,
        history: Sequence[ChatMessage] = ()
    ) -> Tuple[str, List[ChatMessage]]:
        """
        Validate a chat request before any I/O happens.

        Returns:
            The trimmed message and the most recent `max_history` history entries

        Raises:
            ValidationError: With a reason that is safe to show the user
        """
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message is required")

        if len(message) > self.max_message_length:
            raise ValidationError(
                f"Message is too long (max {self.max_message_length} characters)"
            )

        recent = list(history)[-self.max_history:] if self.max_history else []
        return message.strip(), recent

    def build_messages(
        self,
        system_prompt: str,
        history: List[ChatMessage],
        message: str
    ) -> List[Dict[str, str]]:
        """
        Assemble [system, *history, user], dropping the oldest history entries
        while the prompt is over the token budget.
        """
        history = list(history)

        if self.token_counter is not None:
            fixed = self.token_counter(system_prompt) + self.token_counter(message)
            history_tokens = [self.token_counter(m.content) for m in history]
            while history and fixed + sum(history_tokens) > self.prompt_token_budget:
                history.pop(0)
                history_tokens.pop(0)
            logger.debug(f"Prompt size: {fixed + sum(history_tokens)} tokens, {len(history)} history messages")

        return (
            [{"role": "system", "content": system_prompt}]
            + [{"role": m.role, "content": m.content} for m in history]
            + [{"role": "user", "content": message}]
        )

    def stream_reply(self, message: str, history: List[ChatMessage]) -> Iterator[Dict[str, Any]]:
        """
        Answer one validated message.

        Yields:
            {"type": "delta", "content": str} events, then either
            {"type": "done", "sources": [...]} or {"type": "error", "message": str}.
            Provider and internal error details are logged, never yielded.
        """
        started = self.clock()

        try:
            context = self.retrieval_engine.retrieve(message)
            system_prompt = build_system_prompt(context.context_text)
            messages = self.build_messages(system_prompt, history, message)

            stream = self.llm_client.generate_stream(messages)
            try:
                for event in stream:
                    if self.clock() - started > self.timeout:
                        logger.warning(f"Chat turn exceeded {self.timeout:.0f}s, abandoning stream")
                        yield {"type": "error", "message": self.error_message}
                        return
                    if event["type"] == "token":
                        yield {"type": "delta", "content": event["content"]}
            finally:
                stream.close()

        except ProviderError as e:
            logger.error(f"Chat provider error: {e}")
            yield {"type": "error", "message": self.error_message}
            return
        except Exception as e:
            logger.error(f"Unexpected error during chat turn: {e}", exc_info=True)
            yield {"type": "error", "message": self.error_message}
            return

        yield {"type": "done", "sources": context.sources}

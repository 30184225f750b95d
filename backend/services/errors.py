"""Exception types shared by the ingestion, retrieval and chat services."""
import math
import time
from typing import Optional


class ChatbotError(Exception):
    """Base class for all errors raised deliberately by the services."""


class ExtractionError(ChatbotError):
    """Source bytes could not be turned into usable text."""


class EmptyDocumentError(ExtractionError):
    """Extracted text is too short (scanned, image-only or corrupt file)."""


class ChunkingError(ChatbotError):
    """Normalized text could not be segmented."""


class NoChunksError(ChunkingError):
    """Chunking produced zero chunks."""


class ProviderError(ChatbotError):
    """Embedding or chat-completion provider call failed."""


class StoreError(ChatbotError):
    """Knowledge store read or write failed."""


class IngestionFailedError(ChatbotError):
    """Ingestion aborted after the document record was created and rolled back."""


class ValidationError(ChatbotError):
    """Caller input was malformed. The message is safe to show to the user."""


class RateLimitError(ChatbotError):
    """Caller exceeded its request budget for the current window."""

    def __init__(self, reset_at: float, remaining: int = 0, message: Optional[str] = None):
        self.reset_at = reset_at
        self.remaining = remaining
        super().__init__(
            message or "Too many requests. Please wait a moment before sending another message."
        )

    def retry_after(self, now: Optional[float] = None) -> int:
        """Whole seconds until the window resets (never negative)."""
        now = time.time() if now is None else now
        return max(0, math.ceil(self.reset_at - now))

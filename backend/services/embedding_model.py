"""Embedding model integration with Hugging Face Inference API."""
import time
import logging
from typing import List, Optional, Sequence

import httpx
import numpy as np

from config import (
    HUGGINGFACE_API_KEY,
    EMBEDDING_MODEL,
    EMBEDDING_DIMENSIONS,
    EMBEDDING_API_URL,
    EMBED_BATCH_SIZE,
)
from services.errors import ProviderError

logger = logging.getLogger(__name__)


class EmbeddingModel:
    """Wrapper for the hosted embedding model used by both ingestion and queries."""

    def __init__(
        self,
        api_key: str = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIMENSIONS,
        api_url: str = EMBEDDING_API_URL,
        max_batch_size: int = EMBED_BATCH_SIZE,
        timeout: float = 60.0
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            dimensions: Expected vector length; every response is checked against it
            api_url: Feature-extraction endpoint for the model
            max_batch_size: Maximum texts sent in one request
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")
        if max_batch_size <= 0:
            raise ValueError("max_batch_size must be positive")

        self.api_key = api_key
        self.model_name = model_name
        self.dimensions = dimensions
        self.api_url = api_url
        self.max_batch_size = max_batch_size
        self.timeout = timeout

        logger.info(f"Initialized EmbeddingModel with model: {model_name} ({dimensions} dims)")

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed (surrounding whitespace is trimmed)

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            ProviderError: If the provider rejects the request
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        return self._embed_request([text.strip()])[0]

    def embed_batch(
        self,
        texts: Sequence[str],
        timeout: Optional[float] = None
    ) -> List[List[float]]:
        """
        Generate embeddings for multiple texts, one vector per input, in order.

        Inputs larger than max_batch_size are sent as sequential requests.

        Args:
            texts: Texts to embed
            timeout: Per-request timeout in seconds (defaults to the client timeout)

        Returns:
            List of embedding vectors

        Raises:
            ValueError: If texts is empty or contains an empty string
            ProviderError: If any request fails
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        if any(not t or not t.strip() for t in texts):
            raise ValueError("Texts in batch cannot be empty")

        embeddings: List[List[float]] = []
        for start in range(0, len(texts), self.max_batch_size):
            embeddings.extend(self._embed_request(list(texts[start:start + self.max_batch_size]), timeout))
        return embeddings

    def _embed_request(
        self,
        texts: List[str],
        timeout: Optional[float] = None
    ) -> List[List[float]]:
        """
        Call the provider once. Failures are raised, not retried.

        Args:
            texts: List of texts to embed (at most max_batch_size)
            timeout: Overrides the client timeout for this request

        Returns:
            List of embedding vectors

        Raises:
            ProviderError: On transport failure, non-200 status or malformed payload
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "inputs": texts,
            "options": {
                "wait_for_model": True  # Wait for model to load if sleeping
            }
        }

        timeout = self.timeout if timeout is None else timeout

        start_time = time.time()
        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.post(self.api_url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"Embedding request timed out after {timeout:.1f}s")
            raise ProviderError(f"Embedding request timed out after {timeout:.1f}s") from e
        except httpx.RequestError as e:
            logger.error(f"Embedding request network error: {e}")
            raise ProviderError(f"Embedding network error: {e}") from e

        elapsed = time.time() - start_time

        if response.status_code == 401:
            logger.error("Authentication failed for embedding provider")
            raise ProviderError("Invalid embedding API key")

        if response.status_code == 429:
            logger.error("Rate limit exceeded for embedding provider")
            raise ProviderError("Embedding provider rate limit exceeded")

        if response.status_code != 200:
            error_msg = f"Embedding request failed with status {response.status_code}: {response.text}"
            logger.error(error_msg)
            raise ProviderError(error_msg)

        try:
            body = response.json()
        except ValueError as e:
            logger.error("Embedding provider returned a non-JSON body")
            raise ProviderError("Embedding provider returned a non-JSON body") from e

        embeddings = self._validate(body, expected=len(texts))
        logger.debug(f"Generated embeddings for {len(texts)} texts in {elapsed:.2f}s")
        return embeddings

    def _validate(self, payload, expected: int) -> List[List[float]]:
        """Check the response is `expected` vectors of the configured dimension."""
        try:
            matrix = np.asarray(payload, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise ProviderError("Embedding provider returned a malformed payload") from e

        if matrix.ndim != 2 or matrix.shape[0] != expected:
            raise ProviderError(
                f"Expected {expected} embeddings, provider returned shape {matrix.shape}"
            )
        if matrix.shape[1] != self.dimensions:
            raise ProviderError(
                f"Embedding dimension mismatch: expected {self.dimensions}, got {matrix.shape[1]}"
            )
        if not np.all(np.isfinite(matrix)):
            raise ProviderError("Embedding provider returned non-finite values")

        return matrix.tolist()

    def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()
            self.embed_text("warmup query")
            logger.info(f"Model warmup completed in {time.time() - start_time:.1f}s")
            return True
        except ProviderError as e:
            logger.error(f"Model warmup failed: {e}")
            return False

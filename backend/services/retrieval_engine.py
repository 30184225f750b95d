"""Retrieval engine for orchestrating query embedding and chunk retrieval."""
import logging
from typing import List, Optional

from models.chunk import RAGContext, RetrievedChunk
from services.embedding_model import EmbeddingModel
from services.errors import ProviderError, StoreError
from services.vector_store import VectorStore
from config import MATCH_THRESHOLD, MATCH_COUNT

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


def unique_sources(chunks: List[RetrievedChunk]) -> List[str]:
    """Document names in order of first appearance, without repeats."""
    return list(dict.fromkeys(chunk.document_name for chunk in chunks))


def format_context(chunks: List[RetrievedChunk]) -> str:
    """Render chunks as source-attributed blocks for the prompt."""
    return CONTEXT_SEPARATOR.join(
        f"[Source: {chunk.document_name}]\n{chunk.content}" for chunk in chunks
    )


class RetrievalEngine:
    """Embed the query, fetch similar chunks and assemble the context block."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        similarity_threshold: float = MATCH_THRESHOLD,
        match_count: int = MATCH_COUNT
    ):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: Store answering similarity queries
            embedding_model: Same model the chunks were embedded with
            similarity_threshold: Floor below which chunks are ignored
            match_count: Default number of chunks to return
        """
        if match_count <= 0:
            raise ValueError("match_count must be positive")

        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.similarity_threshold = similarity_threshold
        self.match_count = match_count
        logger.info(
            f"Initialized RetrievalEngine (threshold={similarity_threshold}, count={match_count})"
        )

    def retrieve(self, query: str, match_count: Optional[int] = None) -> RAGContext:
        """
        Retrieve context for a user question.

        Failures of the embedding call or the store query are logged and an
        empty context is returned, so the chat turn continues without
        grounding instead of failing.

        Args:
            query: User question
            match_count: Maximum chunks to return (defaults to the configured count)

        Returns:
            RAGContext; empty when nothing matched or retrieval failed

        Raises:
            ValueError: If match_count is not positive
        """
        limit = self.match_count if match_count is None else match_count
        if limit <= 0:
            raise ValueError(f"match_count must be positive, got {limit}")

        query = (query or "").strip()
        if not query:
            logger.warning("Empty query string provided, returning empty context")
            return RAGContext()

        try:
            query_embedding = self.embedding_model.embed_text(query)
            chunks = self.vector_store.match_chunks(
                query_embedding,
                similarity_threshold=self.similarity_threshold,
                limit=limit,
            )
        except (ProviderError, StoreError) as e:
            logger.error(f"RAG retrieval error, continuing without context: {e}")
            return RAGContext()

        if not chunks:
            logger.info(f"No chunks above similarity threshold {self.similarity_threshold}")
            return RAGContext()

        # Store order is similarity order; keep it
        context = RAGContext(
            chunks=chunks,
            sources=unique_sources(chunks),
            context_text=format_context(chunks),
        )
        logger.info(
            f"Retrieved {len(chunks)} chunks from {len(context.sources)} documents "
            f"(top similarity: {chunks[0].similarity:.3f})"
        )
        return context

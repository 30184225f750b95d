"""Chunk data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Chunk:
    """A chunk row ready for insertion into the knowledge base."""
    document_id: str
    content: str
    chunk_index: int  # zero-based position within the document
    embedding: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "content": self.content,
            "chunk_index": self.chunk_index,
            "embedding": self.embedding,
            "metadata": self.metadata,
        }


@dataclass
class RetrievedChunk:
    """Chunk returned from a similarity query. Never persisted."""
    id: str
    content: str
    similarity: float  # 0.0 to 1.0
    document_name: str


@dataclass
class RAGContext:
    """Everything the chat turn needs from retrieval."""
    chunks: List[RetrievedChunk] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    context_text: str = ""

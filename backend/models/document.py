"""Document data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class ExtractedText:
    """Plain text pulled out of an uploaded source file."""
    text: str
    file_size: int  # bytes
    page_count: Optional[int] = None
    source_type: str = "text"  # "pdf" or "text"


@dataclass
class Document:
    """Represents a document row in the knowledge base."""
    id: str
    name: str
    original_filename: str
    file_size: int
    total_chunks: int
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass
class IngestionResult:
    """Outcome of a successful ingestion."""
    document_id: str
    document_name: str
    total_chunks: int
    file_size: int

"""Data models for the Smilez Dental RAG Chatbot."""
from .document import Document, ExtractedText, IngestionResult
from .chunk import Chunk, RetrievedChunk, RAGContext
from .appointment import Appointment
from .api import (
    ChatMessage,
    ChatRequest,
    DocumentInfo,
    UploadResponse,
    DocumentOut,
    DocumentListResponse,
    DeleteResponse,
    AppointmentRequest,
    AppointmentResponse,
)

__all__ = [
    "Document",
    "ExtractedText",
    "IngestionResult",
    "Chunk",
    "RetrievedChunk",
    "RAGContext",
    "Appointment",
    "ChatMessage",
    "ChatRequest",
    "DocumentInfo",
    "UploadResponse",
    "DocumentOut",
    "DocumentListResponse",
    "DeleteResponse",
    "AppointmentRequest",
    "AppointmentResponse",
]

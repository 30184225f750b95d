"""Services for the Smilez Dental RAG Chatbot."""
from .errors import (
    ChatbotError,
    ExtractionError,
    EmptyDocumentError,
    ChunkingError,
    NoChunksError,
    ProviderError,
    StoreError,
    IngestionFailedError,
    ValidationError,
    RateLimitError,
)
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel
from .vector_store import VectorStore
from .ingestion_pipeline import IngestionPipeline
from .retrieval_engine import RetrievalEngine
from .prompt_builder import build_system_prompt
from .rate_limiter import RateLimiter, RateLimitResult
from .llm_client import LLMClient, LLMError, LLMClientError
from .chat_service import ChatService
from .appointment_service import AppointmentService

__all__ = [
    'ChatbotError', 'ExtractionError', 'EmptyDocumentError', 'ChunkingError', 'NoChunksError',
    'ProviderError', 'StoreError', 'IngestionFailedError', 'ValidationError', 'RateLimitError',
    'DocumentLoader', 'ChunkingEngine', 'EmbeddingModel', 'VectorStore', 'IngestionPipeline',
    'RetrievalEngine', 'build_system_prompt', 'RateLimiter', 'RateLimitResult',
    'LLMClient', 'LLMError', 'LLMClientError', 'ChatService', 'AppointmentService',
]

"""Main entry point for the Smilez Dental RAG Chatbot API."""
import json
import logging
import secrets
from dataclasses import asdict

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from config import (
    ADMIN_PASSWORD,
    CORS_ORIGINS,
    LOG_FORMAT,
    LOG_LEVEL,
    MAX_FILE_SIZE_BYTES,
    PORT,
    PRACTICE_PHONE,
)
from logger import setup_logging
from models.api import (
    AppointmentRequest,
    AppointmentResponse,
    ChatRequest,
    DeleteResponse,
    DocumentInfo,
    DocumentListResponse,
    DocumentOut,
    UploadResponse,
)
from services.appointment_service import AppointmentService
from services.chat_service import ChatService, tiktoken_counter
from services.document_loader import is_supported
from services.embedding_model import EmbeddingModel
from services.errors import (
    ChunkingError,
    ExtractionError,
    IngestionFailedError,
    ProviderError,
    RateLimitError,
    StoreError,
    ValidationError,
)
from services.ingestion_pipeline import IngestionPipeline
from services.llm_client import LLMClient
from services.rate_limiter import RateLimiter, RateLimitResult
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Smilez Dental RAG Chatbot",
    description="Website assistant answering patient questions from the practice's documents",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide rate-limit state; starts empty, nothing to tear down
rate_limiter = RateLimiter()

# Initialize services (will be done on startup)
vector_store: VectorStore = None
ingestion_pipeline: IngestionPipeline = None
chat_service: ChatService = None
appointment_service: AppointmentService = None


@app.on_event("startup")
def startup_event():
    """Initialize services on startup."""
    global vector_store, ingestion_pipeline, chat_service, appointment_service

    setup_logging(LOG_LEVEL, json_logs=LOG_FORMAT == "json")
    logger.info("Initializing Smilez Dental RAG Chatbot services...")

    try:
        embedding_model = EmbeddingModel()
        vector_store = VectorStore()
        ingestion_pipeline = IngestionPipeline(embedding_model, vector_store)
        retrieval_engine = RetrievalEngine(vector_store, embedding_model)

        chat_service = ChatService(
            retrieval_engine,
            LLMClient(),
            token_counter=tiktoken_counter()
        )
        appointment_service = AppointmentService()

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(ExtractionError)
@app.exception_handler(ChunkingError)
async def unprocessable_document_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=400, content={"error": f"Failed to process file: {exc}"})


@app.exception_handler(IngestionFailedError)
@app.exception_handler(StoreError)
@app.exception_handler(ProviderError)
async def backend_error_handler(request: Request, exc: Exception):
    # Only admin routes let these through; chat and appointments sanitize their own errors
    logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(RateLimitError)
async def rate_limit_handler(request: Request, exc: RateLimitError):
    return JSONResponse(
        status_code=429,
        content={"error": str(exc)},
        headers={
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(int(exc.reset_at)),
            "Retry-After": str(exc.retry_after()),
        }
    )


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and forwarded.split(",")[0].strip():
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "127.0.0.1"


def enforce_rate_limit(request: Request) -> RateLimitResult:
    result = rate_limiter.check(client_ip(request))
    if not result.allowed:
        raise RateLimitError(reset_at=result.reset_at, remaining=result.remaining)
    return result


def require_admin(request: Request) -> None:
    """Shared-secret check for admin routes. Admin is disabled when no password is set."""
    provided = request.headers.get("x-admin-password") or request.query_params.get("password")
    if not ADMIN_PASSWORD or not provided or not secrets.compare_digest(
        provided.encode("utf-8"), ADMIN_PASSWORD.encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="Unauthorised")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Smilez Dental RAG Chatbot API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "smilez-rag-chatbot",
        "version": "1.0.0"
    }


@app.post("/api/chat")
def chat_endpoint(
    request: ChatRequest,
    rate: RateLimitResult = Depends(enforce_rate_limit)
):
    """
    Streaming chat endpoint for the website widget.

    Returns:
        StreamingResponse with SSE format:
        - data: {"type": "delta", "content": "..."} for each content delta
        - data: {"type": "done", "sources": [...]} when the answer is complete
        - data: {"type": "error", "message": "..."} if the turn fails mid-stream
    """
    message, history = chat_service.prepare(request.message, request.history)
    logger.info(f"Processing chat message: {message[:100]}...")

    def generate_stream():
        for event in chat_service.stream_reply(message, history):
            yield f"data: {json.dumps(event)}\n\n".encode("utf-8")

    return StreamingResponse(
        generate_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable buffering in nginx
            "X-RateLimit-Remaining": str(rate.remaining),
        }
    )


@app.post(
    "/api/admin/upload",
    response_model=UploadResponse,
    dependencies=[Depends(require_admin)]
)
def upload_document(file: UploadFile = File(...)) -> UploadResponse:
    """Upload a PDF or plain-text file and index it into the knowledge base."""
    filename = file.filename or ""
    if not is_supported(filename):
        raise ValidationError("Only PDF and plain text files are supported")

    data = file.file.read(MAX_FILE_SIZE_BYTES + 1)
    if len(data) > MAX_FILE_SIZE_BYTES:
        raise ValidationError(
            f"File too large. Maximum size is {MAX_FILE_SIZE_BYTES // (1024 * 1024)} MB"
        )
    if not data:
        raise ValidationError("Uploaded file is empty")

    result = ingestion_pipeline.ingest(data, filename)

    return UploadResponse(
        success=True,
        document=DocumentInfo(
            id=result.document_id,
            name=result.document_name,
            total_chunks=result.total_chunks,
            file_size=result.file_size,
        ),
        message=f'Successfully processed "{result.document_name}": {result.total_chunks} chunks indexed.',
    )


@app.get(
    "/api/admin/documents",
    response_model=DocumentListResponse,
    dependencies=[Depends(require_admin)]
)
def list_documents() -> DocumentListResponse:
    """List all documents in the knowledge base, newest first."""
    documents = vector_store.list_documents()
    return DocumentListResponse(documents=[DocumentOut(**asdict(d)) for d in documents])


@app.delete(
    "/api/admin/documents/{document_id}",
    response_model=DeleteResponse,
    dependencies=[Depends(require_admin)]
)
def delete_document(document_id: str) -> DeleteResponse:
    """Delete a document and, through the cascade, all of its chunks."""
    if not vector_store.delete_document(document_id):
        raise HTTPException(status_code=404, detail="Document not found")
    return DeleteResponse(success=True, message="Document deleted successfully")


@app.post("/api/appointment", response_model=AppointmentResponse)
def create_appointment(request: AppointmentRequest):
    """Capture an appointment request from the chat widget."""
    try:
        appointment = appointment_service.submit(request)
    except StoreError:
        return JSONResponse(
            status_code=500,
            content={
                "error": "Failed to save appointment request. "
                         f"Please try again or call us on {PRACTICE_PHONE}."
            }
        )

    return AppointmentResponse(
        success=True,
        appointment_id=appointment.id,
        email_sent=appointment.email_sent,
        message=AppointmentService.confirmation_message(appointment),
    )


if __name__ == "__main__":
    import uvicorn
    setup_logging(LOG_LEVEL, json_logs=LOG_FORMAT == "json")
    logger.info(f"Starting Smilez Dental RAG Chatbot API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)

"""Request and response models for the HTTP API."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One prior turn of the conversation as sent by the widget."""
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body of POST /api/chat."""
    message: str
    history: List[ChatMessage] = Field(default_factory=list)
    session_id: Optional[str] = None


class DocumentInfo(BaseModel):
    """Summary of a freshly ingested document."""
    id: str
    name: str
    total_chunks: int
    file_size: int


class UploadResponse(BaseModel):
    """Body returned by POST /api/admin/upload."""
    success: bool
    document: DocumentInfo
    message: str


class DocumentOut(BaseModel):
    """A document as listed on the admin surface."""
    id: str
    name: str
    original_filename: str
    file_size: int
    total_chunks: int
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class DocumentListResponse(BaseModel):
    documents: List[DocumentOut]


class DeleteResponse(BaseModel):
    success: bool
    message: str


class AppointmentRequest(BaseModel):
    """Body of POST /api/appointment."""
    full_name: str = ""
    phone_number: str = ""
    reason_for_visit: str = ""
    email: Optional[str] = None
    preferred_date: Optional[str] = None
    preferred_time: Optional[str] = None
    special_requirements: Optional[str] = None
    session_id: Optional[str] = None


class AppointmentResponse(BaseModel):
    success: bool
    appointment_id: str
    email_sent: bool
    message: str

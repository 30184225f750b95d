"""Appointment request data models."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Appointment:
    """An appointment request captured through the chat widget."""
    id: str
    full_name: str
    phone_number: str
    reason_for_visit: str
    email: Optional[str] = None
    preferred_date: Optional[str] = None
    preferred_time: Optional[str] = None
    special_requirements: Optional[str] = None
    session_id: Optional[str] = None
    status: str = "pending"
    email_sent: bool = False
    created_at: Optional[datetime] = None

"""Appointment request capture backed by Supabase."""
import logging
from typing import Callable, Optional

from supabase import create_client, Client

from models.api import AppointmentRequest
from models.appointment import Appointment
from services.errors import StoreError, ValidationError
from services.vector_store import parse_timestamp
from config import SUPABASE_URL, SUPABASE_KEY, PRACTICE_PHONE

logger = logging.getLogger(__name__)

# Delivers the practice notification (e.g. email). Raises on failure.
Notifier = Callable[[Appointment], None]

MIN_PHONE_DIGITS = 10


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class AppointmentService:
    """Validates, stores and announces appointment requests."""

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        supabase_url: str = SUPABASE_URL,
        supabase_key: str = SUPABASE_KEY,
        table_name: str = "appointment_requests"
    ):
        """Initialize the service with its own Supabase client."""
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.notifier = notifier
        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)
        logger.info(f"AppointmentService initialized (notifier={'on' if notifier else 'off'})")

    @staticmethod
    def validate(request: AppointmentRequest) -> None:
        """
        Check required fields.

        Raises:
            ValidationError: Naming the first missing or invalid field
        """
        if not (request.full_name or "").strip():
            raise ValidationError("Full name is required")
        if not (request.phone_number or "").strip():
            raise ValidationError("Phone number is required")
        if not (request.reason_for_visit or "").strip():
            raise ValidationError("Reason for visit is required")

        digits = "".join(request.phone_number.split())
        if len(digits) < MIN_PHONE_DIGITS:
            raise ValidationError("Please provide a valid phone number")

    def submit(self, request: AppointmentRequest) -> Appointment:
        """
        Save an appointment request and try to notify the practice.

        A notification failure is logged and leaves email_sent False; the
        request itself is already saved at that point.

        Raises:
            ValidationError: If required fields are missing
            StoreError: If the request cannot be saved
        """
        self.validate(request)

        record = {
            "full_name": request.full_name.strip(),
            "phone_number": request.phone_number.strip(),
            "email": _clean(request.email),
            "preferred_date": _clean(request.preferred_date),
            "preferred_time": _clean(request.preferred_time),
            "reason_for_visit": request.reason_for_visit.strip(),
            "special_requirements": _clean(request.special_requirements),
            "session_id": request.session_id or None,
            "status": "pending",
            "email_sent": False,
        }

        try:
            response = self.client.table(self.table_name).insert(record).execute()
        except Exception as e:
            logger.error(f"Appointment insert error: {e}")
            raise StoreError(f"Failed to save appointment request: {e}") from e

        if not response.data:
            raise StoreError("Failed to save appointment request: no row returned")

        row = response.data[0]
        try:
            created_at = parse_timestamp(row.get("created_at"))
        except ValueError:
            # Row is already stored; an unreadable timestamp must not fail the request
            logger.warning(f"Unparseable created_at {row.get('created_at')!r} for appointment {row['id']}")
            created_at = None

        appointment = Appointment(
            id=str(row["id"]),
            full_name=record["full_name"],
            phone_number=record["phone_number"],
            reason_for_visit=record["reason_for_visit"],
            email=record["email"],
            preferred_date=record["preferred_date"],
            preferred_time=record["preferred_time"],
            special_requirements=record["special_requirements"],
            session_id=record["session_id"],
            created_at=created_at,
        )
        logger.info(f"Saved appointment request {appointment.id}")

        if self.notifier is not None:
            self._notify(appointment)

        return appointment

    def _notify(self, appointment: Appointment) -> None:
        try:
            self.notifier(appointment)
        except Exception as e:
            logger.error(f"Notification failed for appointment {appointment.id} (request saved): {e}")
            return

        appointment.email_sent = True
        try:
            self.client.table(self.table_name).update(
                {"email_sent": True}
            ).eq("id", appointment.id).execute()
        except Exception as e:
            logger.error(f"Could not flag appointment {appointment.id} as notified: {e}")

    @staticmethod
    def confirmation_message(appointment: Appointment) -> str:
        if appointment.email_sent:
            return (
                "Your appointment request has been received. "
                "Our receptionist will call you shortly to confirm."
            )
        return (
            "Your appointment request has been saved. "
            f"Please call us on {PRACTICE_PHONE} to confirm."
        )

"""System prompt assembly for the chat model."""
from config import ASSISTANT_NAME, PRACTICE_NAME, PRACTICE_PHONE

APPOINTMENT_FIELDS = [
    "Full name",
    "Phone number (required)",
    "Email address (optional)",
    "Preferred appointment date",
    "Preferred time of day",
    "Reason for visit",
    "Any special requirements",
]


def build_system_prompt(
    context_text: str,
    assistant_name: str = ASSISTANT_NAME,
    practice_name: str = PRACTICE_NAME,
    practice_phone: str = PRACTICE_PHONE
) -> str:
    """
    Build the system prompt around caller-supplied knowledge base context.

    Pure function: static instructions plus `context_text`, nothing else.

    Args:
        context_text: Context block from the retrieval engine ('' when nothing matched)
        assistant_name: Persona name
        practice_name: Business the assistant speaks for
        practice_phone: Number given for emergencies and unanswered questions

    Returns:
        Complete system prompt
    """
    checklist = "\n".join(
        f"{i}. {field}" for i, field in enumerate(APPOINTMENT_FIELDS, start=1)
    )

    if context_text.strip():
        knowledge_section = f"""KNOWLEDGE BASE CONTEXT (use this to answer the patient's question accurately):
---
{context_text}
---
Use the above context to answer. Cite the source document name when providing specific information."""
    else:
        knowledge_section = (
            "NOTE: No relevant information was found in the knowledge base for this query. "
            "Respond helpfully with general dental knowledge where appropriate, but for "
            f"practice-specific information (prices, hours, policies), direct the patient to "
            f"call {practice_phone} or visit the practice."
        )

    return f"""You are {assistant_name}, a friendly and professional AI assistant for {practice_name}.

IMPORTANT GUIDELINES:
- You are an AI assistant, not a human receptionist. Make this clear if asked
- Always use South African English spelling and terminology (e.g. "colour" not "color", "practise" not "practice" when used as a verb)
- Be warm, empathetic and reassuring. Dental anxiety is very common, acknowledge it when appropriate
- Keep responses concise and easy to understand, avoiding overly technical language
- For DENTAL EMERGENCIES, always direct patients to call the practice immediately at {practice_phone}
- When you provide specific information sourced from the knowledge base, mention which document it comes from
- If a question is not covered by the knowledge base, politely say so and suggest the patient contact the practice directly
- Do NOT make up or guess specific prices, procedures or policies. Only state what is in the knowledge base
- Appointment booking: explain that the receptionist will call to confirm the appointment

BOOKING APPOINTMENTS:
When a patient wants to book an appointment, collect the following information step by step:
{checklist}

Once you have this information, use the booking form or confirm you'll pass the details to the receptionist.

{knowledge_section}"""

"""Configuration management for the Smilez Dental RAG Chatbot."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")  # service role key, bypasses RLS
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Model Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2")
EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "768"))
EMBEDDING_API_URL = os.getenv(
    "EMBEDDING_API_URL",
    f"https://router.huggingface.co/hf-inference/models/{EMBEDDING_MODEL}/pipeline/feature-extraction"
)
CHAT_MODEL = os.getenv("CHAT_MODEL", "llama-3.1-8b-instant")
CHAT_MAX_TOKENS = int(os.getenv("CHAT_MAX_TOKENS", "800"))
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.4"))

# Chunking Configuration
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "800"))  # characters
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "150"))  # characters

# Ingestion Configuration
EMBED_BATCH_SIZE = int(os.getenv("EMBED_BATCH_SIZE", "100"))
MIN_TEXT_LENGTH = 50
MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024  # 10 MB

# Retrieval Configuration
MATCH_THRESHOLD = float(os.getenv("MATCH_THRESHOLD", "0.70"))
MATCH_COUNT = int(os.getenv("MATCH_COUNT", "5"))

# Chat Configuration
MAX_MESSAGE_LENGTH = 2000
MAX_HISTORY_MESSAGES = 10
PROMPT_TOKEN_BUDGET = int(os.getenv("PROMPT_TOKEN_BUDGET", "6000"))

# Rate Limiting Configuration
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "20"))
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
RATE_LIMIT_CLEANUP_SECONDS = 5 * 60

# Timeouts
CHAT_TIMEOUT_SECONDS = float(os.getenv("CHAT_TIMEOUT_SECONDS", "30"))
INGEST_TIMEOUT_SECONDS = float(os.getenv("INGEST_TIMEOUT_SECONDS", "60"))

# Practice details used in the assistant persona
PRACTICE_NAME = os.getenv("PRACTICE_NAME", "Smilez Dental Surgery")
ASSISTANT_NAME = os.getenv("ASSISTANT_NAME", "Smilez Dental Assistant")
PRACTICE_PHONE = os.getenv("PRACTICE_PHONE", "013 692 8249")

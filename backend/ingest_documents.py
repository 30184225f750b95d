"""
Document Ingestion Script for the Smilez Dental RAG Chatbot.

This script:
1. Checks that provider and database credentials are set
2. Warms up the embedding model
3. Resolves the target into PDF and text files
4. Runs each file through the same ingestion pipeline as the admin upload
5. Prints a summary and exits non-zero if any file failed

Usage:
    python ingest_documents.py <file-or-directory>
"""
import argparse
import sys
import logging
from pathlib import Path
from typing import List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.document_loader import DocumentLoader
from services.embedding_model import EmbeddingModel
from services.errors import ChatbotError
from services.ingestion_pipeline import IngestionPipeline
from services.vector_store import VectorStore
from config import HUGGINGFACE_API_KEY, SUPABASE_URL, SUPABASE_KEY, LOG_LEVEL, LOG_FORMAT
from logger import setup_logging

logger = logging.getLogger(__name__)

REQUIRED_ENV = {
    "HUGGINGFACE_API_KEY": HUGGINGFACE_API_KEY,
    "SUPABASE_URL": SUPABASE_URL,
    "SUPABASE_KEY": SUPABASE_KEY,
}


def missing_env() -> List[str]:
    """Names of required environment variables that are unset."""
    return [name for name, value in REQUIRED_ENV.items() if not value]


def ingest_files(pipeline: IngestionPipeline, files: List[str]) -> int:
    """
    Ingest each file independently.

    Args:
        pipeline: Configured ingestion pipeline
        files: Paths to ingest

    Returns:
        Number of files that failed
    """
    failures = 0

    for index, path in enumerate(files, start=1):
        filename = Path(path).name
        logger.info(f"[{index}/{len(files)}] Processing {filename}...")

        try:
            data = Path(path).read_bytes()
            result = pipeline.ingest(data, filename)
            logger.info(f"  ✓ {result.document_name}: {result.total_chunks} chunks indexed")
        except (ChatbotError, OSError) as e:
            failures += 1
            logger.error(f"  ✗ {filename}: {e}")

    return failures


def main(argv: Optional[List[str]] = None) -> int:
    """Main ingestion process. Returns the process exit code."""
    parser = argparse.ArgumentParser(
        description="Ingest PDF and text files into the Smilez Dental knowledge base"
    )
    parser.add_argument("target", help="A .pdf/.txt file or a directory containing them")
    args = parser.parse_args(argv)

    setup_logging(LOG_LEVEL, json_logs=LOG_FORMAT == "json")

    missing = missing_env()
    if missing:
        logger.error(f"Missing required environment variables: {', '.join(missing)}")
        return 1

    files = DocumentLoader().list_source_files(args.target)
    if not files:
        logger.error(f"No PDF or text files found at {args.target}")
        return 1

    logger.info("=" * 60)
    logger.info("Starting Smilez Dental Document Ingestion")
    logger.info("=" * 60)

    try:
        embedding_model = EmbeddingModel()
        vector_store = VectorStore()
        pipeline = IngestionPipeline(embedding_model, vector_store)

        logger.info("Warming up embedding model...")
        if not embedding_model.warmup():
            logger.warning("Warmup failed; continuing, the first batch may be slow")

        failures = ingest_files(pipeline, files)
    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        return 1

    logger.info("=" * 60)
    logger.info(f"Files processed: {len(files)}")
    logger.info(f"Succeeded: {len(files) - failures}")
    logger.info(f"Failed: {failures}")
    logger.info("=" * 60)

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())

"""Ingestion pipeline: extract, chunk, embed in batches and persist with rollback."""
import logging
import time
from typing import Callable, List, Optional, Union

from models.chunk import Chunk
from models.document import Document, IngestionResult
from services.chunking_engine import ChunkingEngine
from services.document_loader import (
    DocumentLoader,
    document_name_from_filename,
    normalize_whitespace,
)
from services.embedding_model import EmbeddingModel
from services.errors import (
    EmptyDocumentError,
    IngestionFailedError,
    NoChunksError,
    ProviderError,
    StoreError,
)
from services.vector_store import VectorStore
from config import EMBED_BATCH_SIZE, MIN_TEXT_LENGTH, INGEST_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Turns an uploaded file into one Document and its embedded chunks, or nothing."""

    def __init__(
        self,
        embedding_model: EmbeddingModel,
        vector_store: VectorStore,
        chunking_engine: Optional[ChunkingEngine] = None,
        document_loader: Optional[DocumentLoader] = None,
        batch_size: int = EMBED_BATCH_SIZE,
        min_text_length: int = MIN_TEXT_LENGTH,
        timeout: float = INGEST_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the pipeline.

        Args:
            embedding_model: Gateway used to embed chunk batches
            vector_store: Knowledge store receiving the document and chunks
            chunking_engine: Splitter (defaults to configured chunk size/overlap)
            document_loader: Text extractor
            batch_size: Chunks embedded and inserted per round trip
            min_text_length: Shortest normalized text accepted
            timeout: Seconds allowed for the whole ingestion
            clock: Monotonic time source
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.embedding_model = embedding_model
        self.vector_store = vector_store
        self.chunking_engine = chunking_engine or ChunkingEngine()
        self.document_loader = document_loader or DocumentLoader()
        self.batch_size = batch_size
        self.min_text_length = min_text_length
        self.timeout = timeout
        self.clock = clock

    def ingest(self, source: Union[bytes, str], filename: str) -> IngestionResult:
        """
        Ingest one file. All-or-nothing from the store's point of view.

        Steps:
        1. Extract and normalize text (EmptyDocumentError if too short)
        2. Chunk (NoChunksError if nothing comes out)
        3. Create the document row with a provisional chunk count
        4. For each batch: embed, then insert with global chunk_index values;
           any failure deletes the document (cascading to inserted chunks)
        5. Confirm the stored chunk count, then record it on the document

        Args:
            source: PDF bytes, UTF-8 text bytes, or a text string
            filename: Original filename

        Returns:
            IngestionResult for the committed document

        Raises:
            ExtractionError: If the source cannot be parsed or is empty
            NoChunksError: If chunking yields nothing
            StoreError: If the document row itself cannot be created
            IngestionFailedError: If a later step failed and was rolled back
        """
        started = self.clock()

        extracted = self.document_loader.extract(source, filename)
        text = normalize_whitespace(extracted.text)

        if len(text) < self.min_text_length:
            raise EmptyDocumentError(
                f'"{filename}" appears to be empty or contains only images/scanned content.'
            )

        chunk_texts = self.chunking_engine.split_text(text)
        if not chunk_texts:
            raise NoChunksError(f'No text chunks could be extracted from "{filename}"')

        logger.info(f"Ingesting {filename}: {len(text)} chars -> {len(chunk_texts)} chunks")

        metadata = {"source_type": extracted.source_type}
        if extracted.page_count is not None:
            metadata["pages"] = extracted.page_count

        document = self.vector_store.create_document(
            name=document_name_from_filename(filename),
            original_filename=filename,
            file_size=extracted.file_size,
            total_chunks=len(chunk_texts),
            metadata=metadata,
        )

        try:
            inserted = self._store_chunks(document, chunk_texts, filename, started)
            stored = self.vector_store.count_chunks(document.id)
            if stored != inserted:
                raise IngestionFailedError(
                    f'Chunk count mismatch for "{filename}": inserted {inserted}, store has {stored}'
                )
            self.vector_store.update_total_chunks(document.id, inserted)
        except BaseException as e:
            # Interrupts included: no document survives with a partial chunk set
            self._rollback(document, filename)
            if isinstance(e, (ProviderError, StoreError)):
                raise IngestionFailedError(f'Failed to ingest "{filename}": {e}') from e
            raise

        logger.info(
            f"Ingested {filename} as document {document.id} with {inserted} chunks "
            f"in {self.clock() - started:.1f}s"
        )
        return IngestionResult(
            document_id=document.id,
            document_name=document.name,
            total_chunks=inserted,
            file_size=extracted.file_size,
        )

    def _store_chunks(
        self,
        document: Document,
        chunk_texts: List[str],
        filename: str,
        started: float
    ) -> int:
        """Embed and insert batches sequentially. Returns the inserted count."""
        inserted = 0
        total_batches = (len(chunk_texts) + self.batch_size - 1) // self.batch_size

        for offset in range(0, len(chunk_texts), self.batch_size):
            remaining = self.timeout - (self.clock() - started)
            if remaining <= 0:
                raise IngestionFailedError(
                    f'Ingestion of "{filename}" timed out after {self.timeout:.0f}s'
                )

            batch = chunk_texts[offset:offset + self.batch_size]
            embeddings = self.embedding_model.embed_batch(batch, timeout=remaining)

            rows = [
                Chunk(
                    document_id=document.id,
                    content=content,
                    chunk_index=offset + i,
                    embedding=embedding,
                    metadata={"source": filename, "chunk_index": offset + i},
                )
                for i, (content, embedding) in enumerate(zip(batch, embeddings))
            ]
            self.vector_store.insert_chunks(rows)
            inserted += len(rows)

            logger.info(
                f"Stored batch {offset // self.batch_size + 1}/{total_batches} "
                f"for {filename} ({inserted}/{len(chunk_texts)} chunks)"
            )

        return inserted

    def _rollback(self, document: Document, filename: str) -> None:
        """Delete the partially ingested document. Its chunks go with it."""
        logger.error(f"Rolling back document {document.id} ({filename})")
        try:
            self.vector_store.delete_document(document.id)
        except StoreError as e:
            logger.error(
                f"Rollback of document {document.id} failed; manual cleanup required: {e}",
                exc_info=True,
            )

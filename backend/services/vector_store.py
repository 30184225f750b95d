"""Knowledge store implementation using Supabase pgvector."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import create_client, Client

from models.chunk import Chunk, RetrievedChunk
from models.document import Document
from services.errors import StoreError
from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)

DOCUMENT_COLUMNS = "id, name, original_filename, file_size, total_chunks, metadata, created_at"


def parse_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """
    Parse a timestamp string from Supabase.

    Supabase can return timestamps with varying microsecond precision,
    which fromisoformat() can't always handle, so the fraction is
    normalized to six digits first.
    """
    if not timestamp_str:
        return None

    timestamp_str = timestamp_str.replace("Z", "+00:00")

    if "." in timestamp_str:
        head, tail = timestamp_str.split(".", 1)
        for sign in ("+", "-"):
            if sign in tail:
                fraction, tz = tail.split(sign, 1)
                timestamp_str = f"{head}.{fraction[:6].ljust(6, '0')}{sign}{tz}"
                break
        else:
            timestamp_str = f"{head}.{tail[:6].ljust(6, '0')}"

    return datetime.fromisoformat(timestamp_str)


def _require(row: Dict[str, Any], key: str, kind: Any) -> Any:
    value = row.get(key)
    if value is None or not isinstance(value, kind) or isinstance(value, bool):
        raise StoreError(f"Malformed row from store: field '{key}' is {value!r}")
    return value


def document_from_row(row: Dict[str, Any]) -> Document:
    """Build a Document from a `documents` row, rejecting incomplete rows."""
    try:
        created_at = parse_timestamp(row.get("created_at"))
    except ValueError as e:
        raise StoreError(f"Malformed row from store: bad created_at {row.get('created_at')!r}") from e

    return Document(
        id=str(_require(row, "id", (str, int))),
        name=_require(row, "name", str),
        original_filename=_require(row, "original_filename", str),
        file_size=_require(row, "file_size", int),
        total_chunks=_require(row, "total_chunks", int),
        metadata=row.get("metadata") or {},
        created_at=created_at,
    )


def retrieved_chunk_from_row(row: Dict[str, Any]) -> RetrievedChunk:
    """Build a RetrievedChunk from a `match_document_chunks` row."""
    similarity = float(_require(row, "similarity", (int, float)))
    return RetrievedChunk(
        id=str(_require(row, "id", (str, int))),
        content=_require(row, "content", str),
        similarity=max(0.0, min(1.0, similarity)),
        document_name=_require(row, "document_name", str),
    )


class VectorStore:
    """Persist documents and chunk embeddings and answer similarity queries."""

    def __init__(
        self,
        supabase_url: str = SUPABASE_URL,
        supabase_key: str = SUPABASE_KEY,
        documents_table: str = "documents",
        chunks_table: str = "document_chunks",
        match_function: str = "match_document_chunks"
    ):
        """
        Initialize the store with a Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase service role key
            documents_table: Table holding one row per document
            chunks_table: Table holding chunk rows with embeddings
            match_function: SQL function performing cosine-similarity search

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.documents_table = documents_table
        self.chunks_table = chunks_table
        self.match_function = match_function

        self.client: Client = create_client(supabase_url, supabase_key)

        logger.info(f"Initialized VectorStore with tables: {documents_table}, {chunks_table}")

    def create_document(
        self,
        name: str,
        original_filename: str,
        file_size: int,
        total_chunks: int,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Document:
        """
        Insert a document row.

        Returns:
            The created Document, including its store-assigned id

        Raises:
            StoreError: If the insert fails or returns no row
        """
        try:
            response = self.client.table(self.documents_table).insert({
                "name": name,
                "original_filename": original_filename,
                "file_size": file_size,
                "total_chunks": total_chunks,
                "metadata": metadata or {},
            }).execute()
        except Exception as e:
            error_msg = f"Failed to create document record: {e}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e

        if not response.data:
            raise StoreError("Failed to create document record: no row returned")

        document = document_from_row(response.data[0])
        logger.info(f"Created document {document.id} ({original_filename})")
        return document

    def insert_chunks(self, chunks: List[Chunk]) -> None:
        """
        Insert a batch of chunk rows in one request.

        Args:
            chunks: Chunks with embeddings already attached

        Raises:
            ValueError: If chunks list is empty
            StoreError: If the insert fails
        """
        if not chunks:
            raise ValueError("Chunks list cannot be empty")

        try:
            self.client.table(self.chunks_table).insert(
                [chunk.to_record() for chunk in chunks]
            ).execute()
        except Exception as e:
            error_msg = f"Failed to insert chunks: {e}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e

        logger.debug(f"Inserted {len(chunks)} chunks")

    def update_total_chunks(self, document_id: str, total_chunks: int) -> None:
        """Record the committed chunk count on the document row."""
        try:
            self.client.table(self.documents_table).update(
                {"total_chunks": total_chunks}
            ).eq("id", document_id).execute()
        except Exception as e:
            error_msg = f"Failed to update chunk count for document {document_id}: {e}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e

    def delete_document(self, document_id: str) -> bool:
        """
        Delete a document. ON DELETE CASCADE removes its chunks in the same statement.

        Returns:
            True if a row was deleted, False if no such document existed

        Raises:
            StoreError: If the delete fails
        """
        try:
            response = self.client.table(self.documents_table).delete().eq("id", document_id).execute()
        except Exception as e:
            error_msg = f"Failed to delete document {document_id}: {e}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e

        deleted = bool(response.data)
        if deleted:
            logger.info(f"Deleted document {document_id} and its chunks")
        return deleted

    def list_documents(self) -> List[Document]:
        """
        List all documents, newest first.

        Raises:
            StoreError: If the query fails or returns malformed rows
        """
        try:
            response = (
                self.client.table(self.documents_table)
                .select(DOCUMENT_COLUMNS)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            error_msg = f"Failed to list documents: {e}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e

        return [document_from_row(row) for row in response.data or []]

    def match_chunks(
        self,
        query_embedding: List[float],
        similarity_threshold: float,
        limit: int
    ) -> List[RetrievedChunk]:
        """
        Find the chunks most similar to the query by cosine similarity.

        Ordering (descending similarity) is done by the SQL function
        match_document_chunks in schema.sql, not here.

        Args:
            query_embedding: Embedding vector for the user query
            similarity_threshold: Minimum similarity to return
            limit: Maximum number of chunks

        Returns:
            RetrievedChunk list in store order

        Raises:
            ValueError: If query_embedding is empty or limit is invalid
            StoreError: If the query fails or returns malformed rows
        """
        if not query_embedding:
            raise ValueError("Query embedding cannot be empty")

        if limit <= 0:
            raise ValueError("limit must be positive")

        try:
            response = self.client.rpc(
                self.match_function,
                {
                    "query_embedding": query_embedding,
                    "match_threshold": similarity_threshold,
                    "match_count": limit
                }
            ).execute()
        except Exception as e:
            error_msg = f"Failed to search knowledge store: {e}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e

        chunks = [retrieved_chunk_from_row(row) for row in response.data or []]
        logger.debug(f"Found {len(chunks)} chunks above threshold {similarity_threshold}")
        return chunks

    def count_chunks(self, document_id: Optional[str] = None) -> int:
        """
        Count chunk rows, optionally for one document.

        Raises:
            StoreError: If the query fails
        """
        try:
            query = self.client.table(self.chunks_table).select("id", count="exact")
            if document_id is not None:
                query = query.eq("document_id", document_id)
            response = query.execute()
        except Exception as e:
            error_msg = f"Failed to count chunks: {e}"
            logger.error(error_msg)
            raise StoreError(error_msg) from e

        return response.count if response.count is not None else 0

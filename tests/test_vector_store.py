"""Unit tests for VectorStore class."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from datetime import datetime
from unittest.mock import Mock, patch, MagicMock
from models.chunk import Chunk, RetrievedChunk
from services.errors import StoreError
from services.vector_store import VectorStore, parse_timestamp, document_from_row


DOCUMENT_ROW = {
    "id": "doc-1",
    "name": "Services",
    "original_filename": "Services.pdf",
    "file_size": 2048,
    "total_chunks": 3,
    "metadata": {"pages": 2},
    "created_at": "2025-03-01T10:20:30.12345+00:00",
}


@pytest.fixture
def store_and_client():
    with patch('services.vector_store.create_client') as mock_create_client:
        mock_client = MagicMock()
        mock_create_client.return_value = mock_client
        store = VectorStore(
            supabase_url="https://test.supabase.co",
            supabase_key="test_key"
        )
        yield store, mock_client


class TestParseTimestamp:
    """Timestamps from Supabase come with varying fraction precision."""

    def test_short_fraction_with_offset(self):
        parsed = parse_timestamp("2025-03-01T10:20:30.12345+00:00")
        assert parsed == datetime.fromisoformat("2025-03-01T10:20:30.123450+00:00")

    def test_zulu_suffix(self):
        parsed = parse_timestamp("2025-03-01T10:20:30Z")
        assert parsed.utcoffset().total_seconds() == 0

    def test_empty(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None


class TestVectorStore:
    """Test suite for VectorStore."""

    @patch('services.vector_store.create_client')
    def test_initialization_success(self, mock_create_client):
        """Test successful initialization with credentials."""
        mock_create_client.return_value = MagicMock()

        store = VectorStore(
            supabase_url="https://test.supabase.co",
            supabase_key="test_key"
        )

        assert store.documents_table == "documents"
        assert store.chunks_table == "document_chunks"
        assert store.match_function == "match_document_chunks"
        mock_create_client.assert_called_once_with("https://test.supabase.co", "test_key")

    def test_initialization_without_credentials(self):
        """Test initialization fails without Supabase credentials."""
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            VectorStore(supabase_url=None, supabase_key="test_key")

        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            VectorStore(supabase_url="https://test.supabase.co", supabase_key=None)

    def test_create_document(self, store_and_client):
        store, client = store_and_client
        client.table.return_value.insert.return_value.execute.return_value = Mock(
            data=[DOCUMENT_ROW]
        )

        document = store.create_document(
            name="Services",
            original_filename="Services.pdf",
            file_size=2048,
            total_chunks=3,
            metadata={"pages": 2},
        )

        assert document.id == "doc-1"
        assert document.name == "Services"
        assert document.metadata == {"pages": 2}
        assert document.created_at.year == 2025
        client.table.assert_called_with("documents")
        inserted = client.table.return_value.insert.call_args.args[0]
        assert inserted["original_filename"] == "Services.pdf"
        assert inserted["total_chunks"] == 3

    def test_create_document_without_returned_row(self, store_and_client):
        store, client = store_and_client
        client.table.return_value.insert.return_value.execute.return_value = Mock(data=[])

        with pytest.raises(StoreError, match="no row returned"):
            store.create_document("Services", "Services.pdf", 10, 1)

    def test_create_document_failure_wrapped(self, store_and_client):
        store, client = store_and_client
        client.table.return_value.insert.return_value.execute.side_effect = Exception("db down")

        with pytest.raises(StoreError, match="db down"):
            store.create_document("Services", "Services.pdf", 10, 1)

    def test_insert_chunks_empty_list(self, store_and_client):
        """Test insert_chunks raises error for empty list."""
        store, _ = store_and_client

        with pytest.raises(ValueError, match="Chunks list cannot be empty"):
            store.insert_chunks([])

    def test_insert_chunks_success(self, store_and_client):
        """Test successful insertion of a chunk batch in one request."""
        store, client = store_and_client
        chunks = [
            Chunk(
                document_id="doc-1",
                content=f"chunk {i}",
                chunk_index=i,
                embedding=[0.1, 0.2, 0.3],
                metadata={"source": "Services.pdf", "chunk_index": i},
            )
            for i in range(2)
        ]

        store.insert_chunks(chunks)

        client.table.assert_called_with("document_chunks")
        records = client.table.return_value.insert.call_args.args[0]
        assert [r["chunk_index"] for r in records] == [0, 1]
        assert records[0]["document_id"] == "doc-1"
        assert records[1]["embedding"] == [0.1, 0.2, 0.3]
        assert client.table.return_value.insert.call_count == 1

    def test_insert_chunks_failure_wrapped(self, store_and_client):
        store, client = store_and_client
        client.table.return_value.insert.return_value.execute.side_effect = Exception("duplicate key")
        chunk = Chunk("doc-1", "text", 0, [0.1], {})

        with pytest.raises(StoreError, match="duplicate key"):
            store.insert_chunks([chunk])

    def test_update_total_chunks(self, store_and_client):
        store, client = store_and_client

        store.update_total_chunks("doc-1", 7)

        client.table.return_value.update.assert_called_once_with({"total_chunks": 7})
        client.table.return_value.update.return_value.eq.assert_called_once_with("id", "doc-1")

    def test_delete_document(self, store_and_client):
        store, client = store_and_client
        client.table.return_value.delete.return_value.eq.return_value.execute.return_value = Mock(
            data=[DOCUMENT_ROW]
        )

        assert store.delete_document("doc-1") is True
        client.table.return_value.delete.return_value.eq.assert_called_once_with("id", "doc-1")

    def test_delete_missing_document(self, store_and_client):
        store, client = store_and_client
        client.table.return_value.delete.return_value.eq.return_value.execute.return_value = Mock(
            data=[]
        )

        assert store.delete_document("missing") is False

    def test_list_documents_newest_first(self, store_and_client):
        store, client = store_and_client
        query = client.table.return_value.select.return_value.order.return_value
        query.execute.return_value = Mock(data=[DOCUMENT_ROW, {**DOCUMENT_ROW, "id": "doc-0"}])

        documents = store.list_documents()

        assert [d.id for d in documents] == ["doc-1", "doc-0"]
        client.table.return_value.select.return_value.order.assert_called_once_with(
            "created_at", desc=True
        )

    def test_list_documents_rejects_malformed_row(self, store_and_client):
        store, client = store_and_client
        query = client.table.return_value.select.return_value.order.return_value
        query.execute.return_value = Mock(data=[{**DOCUMENT_ROW, "name": None}])

        with pytest.raises(StoreError, match="name"):
            store.list_documents()

    def test_match_chunks_empty_embedding(self, store_and_client):
        """Test match_chunks raises error for empty embedding."""
        store, _ = store_and_client

        with pytest.raises(ValueError, match="Query embedding cannot be empty"):
            store.match_chunks([], similarity_threshold=0.7, limit=5)

    def test_match_chunks_invalid_limit(self, store_and_client):
        store, _ = store_and_client

        with pytest.raises(ValueError, match="limit must be positive"):
            store.match_chunks([0.1], similarity_threshold=0.7, limit=0)

    def test_match_chunks_success(self, store_and_client):
        """Rows come back in store order with similarity kept in [0, 1]."""
        store, client = store_and_client
        client.rpc.return_value.execute.return_value = Mock(data=[
            {"id": "c1", "content": "Whitening costs vary.", "similarity": 0.91, "document_name": "Services"},
            {"id": "c2", "content": "Open Monday to Friday.", "similarity": 0.74, "document_name": "Hours"},
        ])

        results = store.match_chunks([0.1, 0.2, 0.3], similarity_threshold=0.7, limit=5)

        assert results == [
            RetrievedChunk(id="c1", content="Whitening costs vary.", similarity=0.91, document_name="Services"),
            RetrievedChunk(id="c2", content="Open Monday to Friday.", similarity=0.74, document_name="Hours"),
        ]
        client.rpc.assert_called_once_with(
            "match_document_chunks",
            {
                "query_embedding": [0.1, 0.2, 0.3],
                "match_threshold": 0.7,
                "match_count": 5
            }
        )

    def test_match_chunks_clamps_similarity(self, store_and_client):
        store, client = store_and_client
        client.rpc.return_value.execute.return_value = Mock(data=[
            {"id": "c1", "content": "text", "similarity": 1.0000002, "document_name": "Services"},
        ])

        results = store.match_chunks([0.1], similarity_threshold=0.7, limit=5)

        assert results[0].similarity == 1.0

    def test_match_chunks_malformed_row(self, store_and_client):
        store, client = store_and_client
        client.rpc.return_value.execute.return_value = Mock(data=[
            {"id": "c1", "content": "text", "similarity": None, "document_name": "Services"},
        ])

        with pytest.raises(StoreError, match="similarity"):
            store.match_chunks([0.1], similarity_threshold=0.7, limit=5)

    def test_match_chunks_failure_wrapped(self, store_and_client):
        store, client = store_and_client
        client.rpc.return_value.execute.side_effect = Exception("Database error")

        with pytest.raises(StoreError, match="Database error"):
            store.match_chunks([0.1], similarity_threshold=0.7, limit=5)

    def test_count_chunks(self, store_and_client):
        """Test count_chunks, overall and for one document."""
        store, client = store_and_client
        select = client.table.return_value.select
        select.return_value.execute.return_value = Mock(count=42)
        select.return_value.eq.return_value.execute.return_value = Mock(count=3)

        assert store.count_chunks() == 42
        assert store.count_chunks("doc-1") == 3
        select.assert_called_with("id", count="exact")
        select.return_value.eq.assert_called_once_with("document_id", "doc-1")

    def test_count_chunks_error(self, store_and_client):
        store, client = store_and_client
        client.table.return_value.select.return_value.execute.side_effect = Exception("Database error")

        with pytest.raises(StoreError):
            store.count_chunks()


def test_document_from_row_rejects_bad_timestamp():
    with pytest.raises(StoreError, match="created_at"):
        document_from_row({**DOCUMENT_ROW, "created_at": "not a date"})

"""Unit tests for EmbeddingModel class."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import json
import pytest
from unittest.mock import Mock, patch, MagicMock
import httpx
from services.embedding_model import EmbeddingModel
from services.errors import ProviderError


def _mock_http(mock_client_class, *responses):
    """Wire httpx.Client so each post() returns the next response."""
    mock_client = MagicMock()
    mock_client.__enter__.return_value.post.side_effect = list(responses)
    mock_client_class.return_value = mock_client
    return mock_client.__enter__.return_value.post


def _response(status_code=200, payload=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = text
    return response


class TestEmbeddingModel:
    """Test suite for EmbeddingModel."""

    def test_initialization_success(self):
        """Test successful initialization with API key."""
        model = EmbeddingModel(api_key="test_key")
        assert model.api_key == "test_key"
        assert model.model_name == "sentence-transformers/all-mpnet-base-v2"
        assert model.dimensions == 768
        assert model.max_batch_size == 100

    def test_initialization_without_api_key(self):
        """Test initialization fails without API key."""
        with pytest.raises(ValueError, match="HUGGINGFACE_API_KEY"):
            EmbeddingModel(api_key=None)

    def test_embed_text_empty_string(self):
        """Test embed_text raises error for empty string."""
        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(ValueError, match="Text cannot be empty"):
            model.embed_text("")

        with pytest.raises(ValueError, match="Text cannot be empty"):
            model.embed_text("   ")

    def test_embed_batch_empty_list(self):
        """Test embed_batch raises error for empty list."""
        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(ValueError, match="Texts list cannot be empty"):
            model.embed_batch([])

    def test_embed_batch_rejects_any_empty_string(self):
        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(ValueError, match="cannot be empty"):
            model.embed_batch(["fine", "   "])

    @patch('httpx.Client')
    def test_embed_text_success(self, mock_client_class):
        """Test successful single text embedding."""
        post = _mock_http(mock_client_class, _response(payload=[[0.1, 0.2, 0.3]]))

        model = EmbeddingModel(api_key="test_key", dimensions=3)
        result = model.embed_text("  test text  ")

        assert result == [0.1, 0.2, 0.3]
        sent = post.call_args.kwargs["json"]
        assert sent["inputs"] == ["test text"]
        assert sent["options"]["wait_for_model"] is True
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer test_key"

    @patch('httpx.Client')
    def test_embed_batch_success(self, mock_client_class):
        """Test successful batch embedding."""
        _mock_http(mock_client_class, _response(payload=[[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]]))

        model = EmbeddingModel(api_key="test_key", dimensions=3)
        result = model.embed_batch(["text1", "text2"])

        assert result == [[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]]

    @patch('httpx.Client')
    def test_embed_batch_splits_large_input(self, mock_client_class):
        """Inputs beyond max_batch_size go out as sequential requests, order kept."""
        post = _mock_http(
            mock_client_class,
            _response(payload=[[1.0, 0.0], [2.0, 0.0]]),
            _response(payload=[[3.0, 0.0], [4.0, 0.0]]),
            _response(payload=[[5.0, 0.0]]),
        )

        model = EmbeddingModel(api_key="test_key", dimensions=2, max_batch_size=2)
        result = model.embed_batch(["a", "b", "c", "d", "e"])

        assert [vector[0] for vector in result] == [1.0, 2.0, 3.0, 4.0, 5.0]
        assert post.call_count == 3
        assert post.call_args_list[2].kwargs["json"]["inputs"] == ["e"]

    @patch('httpx.Client')
    def test_dimension_mismatch_raises(self, mock_client_class):
        _mock_http(mock_client_class, _response(payload=[[0.1, 0.2]]))

        model = EmbeddingModel(api_key="test_key", dimensions=768)

        with pytest.raises(ProviderError, match="dimension mismatch"):
            model.embed_text("test text")

    @patch('httpx.Client')
    def test_wrong_vector_count_raises(self, mock_client_class):
        _mock_http(mock_client_class, _response(payload=[[0.1, 0.2, 0.3]]))

        model = EmbeddingModel(api_key="test_key", dimensions=3)

        with pytest.raises(ProviderError, match="Expected 2 embeddings"):
            model.embed_batch(["one", "two"])

    @patch('httpx.Client')
    def test_malformed_payload_raises(self, mock_client_class):
        _mock_http(mock_client_class, _response(payload={"error": "unexpected"}))

        model = EmbeddingModel(api_key="test_key", dimensions=3)

        with pytest.raises(ProviderError):
            model.embed_text("test text")

    @patch('httpx.Client')
    def test_non_json_body_raises(self, mock_client_class):
        """A 200 carrying an HTML gateway page is a provider failure."""
        response = _response(text="<html>Bad Gateway</html>")
        response.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)
        _mock_http(mock_client_class, response)

        model = EmbeddingModel(api_key="test_key", dimensions=3)

        with pytest.raises(ProviderError, match="non-JSON"):
            model.embed_text("test text")

    @patch('httpx.Client')
    def test_batch_timeout_override(self, mock_client_class):
        _mock_http(mock_client_class, _response(payload=[[0.1, 0.2, 0.3]]))

        model = EmbeddingModel(api_key="test_key", dimensions=3, timeout=60.0)
        model.embed_batch(["Implants"], timeout=12.5)

        mock_client_class.assert_called_once_with(timeout=12.5)

    @patch('httpx.Client')
    def test_authentication_error(self, mock_client_class):
        """Test 401 authentication error is not retried."""
        post = _mock_http(mock_client_class, _response(status_code=401))

        model = EmbeddingModel(api_key="invalid_key")

        with pytest.raises(ProviderError, match="Invalid embedding API key"):
            model.embed_text("test text")

        assert post.call_count == 1

    @patch('httpx.Client')
    def test_rate_limit_error(self, mock_client_class):
        _mock_http(mock_client_class, _response(status_code=429))

        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(ProviderError, match="rate limit"):
            model.embed_text("test text")

    @patch('httpx.Client')
    def test_server_error_is_not_retried(self, mock_client_class):
        post = _mock_http(mock_client_class, _response(status_code=503, text="loading"))

        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(ProviderError, match="status 503"):
            model.embed_text("test text")

        assert post.call_count == 1

    @patch('httpx.Client')
    def test_timeout_error(self, mock_client_class):
        """Test timeout surfaces as ProviderError."""
        _mock_http(mock_client_class, httpx.TimeoutException("Request timed out"))

        model = EmbeddingModel(api_key="test_key", timeout=5.0)

        with pytest.raises(ProviderError, match="timed out"):
            model.embed_text("test text")

    @patch('httpx.Client')
    def test_network_error(self, mock_client_class):
        _mock_http(mock_client_class, httpx.ConnectError("connection refused"))

        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(ProviderError, match="network error"):
            model.embed_text("test text")

    @patch('httpx.Client')
    def test_warmup_success(self, mock_client_class):
        """Test successful model warmup."""
        _mock_http(mock_client_class, _response(payload=[[0.1, 0.2, 0.3]]))

        model = EmbeddingModel(api_key="test_key", dimensions=3)

        assert model.warmup() is True

    @patch('httpx.Client')
    def test_warmup_failure(self, mock_client_class):
        """Test warmup returns False on failure."""
        _mock_http(mock_client_class, _response(status_code=500, text="boom"))

        model = EmbeddingModel(api_key="test_key")

        assert model.warmup() is False

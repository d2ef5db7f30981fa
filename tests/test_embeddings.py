"""Tests for the EmbeddingService.

All OpenAI and local-service calls are mocked. Tests cover:
1. UTF-8 byte-budget truncation
2. Embedding input text format
3. Single-text embedding
4. Empty text handling
5. Dimension checks
6. Retry on transient errors, no retry on client errors
7. Local HTTP mode
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from secondbrain.search.embeddings import (
    EmbeddingError,
    EmbeddingService,
    build_embedding_text,
    truncate_to_byte_budget,
)

DIM = 8

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedding_service() -> EmbeddingService:
    """Create an EmbeddingService with a dummy API key and no backoff delay."""
    return EmbeddingService(api_key="test-api-key-fake", dimensions=DIM, retry_wait_base=0)


@pytest.fixture
def sample_embedding() -> list[float]:
    return [0.01 * i for i in range(DIM)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_openai_response(embeddings: list[list[float]]):
    """Build a fake OpenAI embeddings.create() response object."""
    data = []
    for idx, emb in enumerate(embeddings):
        item = MagicMock()
        item.embedding = emb
        item.index = idx
        data.append(item)
    response = MagicMock()
    response.data = data
    return response


_OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


def _connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=_OPENAI_REQUEST)


def _auth_error() -> openai.AuthenticationError:
    return openai.AuthenticationError(
        "invalid api key",
        response=httpx.Response(401, request=_OPENAI_REQUEST),
        body=None,
    )


def _rate_limit_error() -> openai.RateLimitError:
    return openai.RateLimitError(
        "quota exceeded",
        response=httpx.Response(429, request=_OPENAI_REQUEST),
        body=None,
    )


# ---------------------------------------------------------------------------
# 1. Byte-budget truncation
# ---------------------------------------------------------------------------


class TestTruncateToByteBudget:
    def test_short_text_unchanged(self):
        assert truncate_to_byte_budget("hello world", 100) == "hello world"

    def test_lone_surrogate_is_replaced(self):
        result = truncate_to_byte_budget("budget \ud800 meeting", 8000)
        assert result == "budget \ufffd meeting"
        assert result.encode("utf-8")

    def test_lone_surrogate_counts_as_replacement_bytes(self):
        assert truncate_to_byte_budget("ab\udc00cd", 5) == "ab\ufffd"

    def test_ascii_cut_exactly_at_budget(self):
        result = truncate_to_byte_budget("abcdefghij", 4)
        assert result == "abcd"

    def test_never_splits_multibyte_character(self):
        text = "가나다라"  # 3 bytes per character
        result = truncate_to_byte_budget(text, 7)
        assert result == "가나"
        assert len(result.encode("utf-8")) == 6

    def test_four_byte_characters(self):
        text = "😀😀😀"  # 4 bytes per character
        result = truncate_to_byte_budget(text, 10)
        assert result == "😀😀"

    def test_prefers_nearby_whitespace(self):
        # Cut at 10 bytes lands inside "hijkl"; the space before it is used.
        result = truncate_to_byte_budget("abcdefg hijkl", 10)
        assert result == "abcdefg"

    def test_distant_whitespace_is_ignored(self):
        result = truncate_to_byte_budget("ab cdefghijklmnop", 10)
        assert result == "ab cdefghi"

    def test_zero_budget(self):
        assert truncate_to_byte_budget("abc", 0) == ""

    @pytest.mark.parametrize(
        "text",
        [
            "plain ascii words " * 50,
            "naïve café résumé " * 40,
            "한국어 문장입니다 " * 40,
            "emoji 😀 mixed 日本語 text " * 30,
        ],
    )
    def test_result_within_three_bytes_of_budget(self, text):
        for budget in (50, 101, 257):
            result = truncate_to_byte_budget(text, budget)
            size = len(result.encode("utf-8"))
            assert budget - 3 <= size <= budget
            assert text.startswith(result)


# ---------------------------------------------------------------------------
# 2. Embedding input text
# ---------------------------------------------------------------------------


def test_build_embedding_text_full():
    created = datetime(2024, 3, 3, 10, 0, tzinfo=UTC)
    text = build_embedding_text("Budget", "Cut travel.", created)
    assert text == "Title: Budget\nDate: 2024-03-03T10:00:00+00:00\nContent: Cut travel."


def test_build_embedding_text_uses_url_without_body():
    text = build_embedding_text(None, None, source_url="https://example.com/a")
    assert text == "Content: https://example.com/a"


# ---------------------------------------------------------------------------
# 3. Single-text embedding
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_embed_text_single(embedding_service: EmbeddingService, sample_embedding: list[float]):
    fake_response = _make_openai_response([sample_embedding])

    with patch.object(
        embedding_service._client.embeddings, "create", new_callable=AsyncMock, return_value=fake_response
    ) as mock_create:
        result = await embedding_service.embed_text("Hello world")

    assert result == sample_embedding
    kwargs = mock_create.call_args.kwargs
    assert kwargs["input"] == ["Hello world"]
    assert kwargs["model"] == "text-embedding-3-small"
    assert kwargs["dimensions"] == DIM


@pytest.mark.asyncio
async def test_long_input_is_truncated_before_sending(sample_embedding: list[float]):
    service = EmbeddingService(api_key="k", dimensions=DIM, max_input_bytes=16)
    fake_response = _make_openai_response([sample_embedding])

    with patch.object(
        service._client.embeddings, "create", new_callable=AsyncMock, return_value=fake_response
    ) as mock_create:
        await service.embed_text("x" * 100)

    sent = mock_create.call_args.kwargs["input"][0]
    assert len(sent.encode("utf-8")) == 16


@pytest.mark.asyncio
async def test_lone_surrogate_is_sent_as_replacement_character(
    embedding_service: EmbeddingService, sample_embedding: list[float]
):
    fake_response = _make_openai_response([sample_embedding])

    with patch.object(
        embedding_service._client.embeddings, "create", new_callable=AsyncMock, return_value=fake_response
    ) as mock_create:
        result = await embedding_service.embed_text("budget \ud800 meeting")

    assert result == sample_embedding
    assert mock_create.call_args.kwargs["input"] == ["budget \ufffd meeting"]


# ---------------------------------------------------------------------------
# 4. Empty text handling
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_embed_text_empty(embedding_service: EmbeddingService):
    with patch.object(embedding_service._client.embeddings, "create", new_callable=AsyncMock) as mock_create:
        assert await embedding_service.embed_text("") == []
        assert await embedding_service.embed_text("   ") == []
    mock_create.assert_not_called()


# ---------------------------------------------------------------------------
# 5. Dimension checks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_wrong_dimension_raises(embedding_service: EmbeddingService):
    fake_response = _make_openai_response([[0.1, 0.2, 0.3]])

    with patch.object(
        embedding_service._client.embeddings, "create", new_callable=AsyncMock, return_value=fake_response
    ):
        with pytest.raises(EmbeddingError, match="dimension mismatch"):
            await embedding_service.embed_text("Hello")


# ---------------------------------------------------------------------------
# 6. Retries
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_transient_error_is_retried(embedding_service: EmbeddingService, sample_embedding: list[float]):
    fake_response = _make_openai_response([sample_embedding])

    with patch.object(
        embedding_service._client.embeddings,
        "create",
        new_callable=AsyncMock,
        side_effect=[_connection_error(), fake_response],
    ) as mock_create:
        result = await embedding_service.embed_text("Hello")

    assert result == sample_embedding
    assert mock_create.await_count == 2


@pytest.mark.asyncio
async def test_transient_error_exhausts_attempts(embedding_service: EmbeddingService):
    with patch.object(
        embedding_service._client.embeddings,
        "create",
        new_callable=AsyncMock,
        side_effect=_connection_error(),
    ) as mock_create:
        with pytest.raises(EmbeddingError) as exc_info:
            await embedding_service.embed_text("Hello")

    assert mock_create.await_count == 3
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
@pytest.mark.parametrize("error_factory", [_auth_error, _rate_limit_error])
async def test_client_errors_are_not_retried(embedding_service: EmbeddingService, error_factory):
    with patch.object(
        embedding_service._client.embeddings,
        "create",
        new_callable=AsyncMock,
        side_effect=error_factory(),
    ) as mock_create:
        with pytest.raises(EmbeddingError) as exc_info:
            await embedding_service.embed_text("Hello")

    assert mock_create.await_count == 1
    assert exc_info.value.retryable is False


# ---------------------------------------------------------------------------
# 7. Local HTTP mode
# ---------------------------------------------------------------------------


def _local_response(status_code: int, payload: dict | None = None) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload or {},
        request=httpx.Request("POST", "http://embedder:8001/embed"),
    )


@pytest.mark.asyncio
async def test_local_mode_posts_to_embed_endpoint(sample_embedding: list[float]):
    service = EmbeddingService(dimensions=DIM, local_url="http://embedder:8001/", retry_wait_base=0)
    assert service._client is None

    with patch.object(
        httpx.AsyncClient,
        "post",
        new_callable=AsyncMock,
        return_value=_local_response(200, {"embeddings": [sample_embedding]}),
    ) as mock_post:
        result = await service.embed_text("Hello")

    assert result == sample_embedding
    assert mock_post.call_args.args[0] == "http://embedder:8001/embed"
    assert mock_post.call_args.kwargs["json"] == {"input": ["Hello"], "dimensions": DIM}


@pytest.mark.asyncio
async def test_local_mode_retries_server_errors(sample_embedding: list[float]):
    service = EmbeddingService(dimensions=DIM, local_url="http://embedder:8001", retry_wait_base=0)

    with patch.object(
        httpx.AsyncClient,
        "post",
        new_callable=AsyncMock,
        side_effect=[_local_response(503), _local_response(200, {"embeddings": [sample_embedding]})],
    ) as mock_post:
        result = await service.embed_text("Hello")

    assert result == sample_embedding
    assert mock_post.await_count == 2


@pytest.mark.asyncio
async def test_local_mode_client_error_not_retried():
    service = EmbeddingService(dimensions=DIM, local_url="http://embedder:8001", retry_wait_base=0)

    with patch.object(
        httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=_local_response(400)
    ) as mock_post:
        with pytest.raises(EmbeddingError):
            await service.embed_text("Hello")

    assert mock_post.await_count == 1


@pytest.mark.asyncio
async def test_local_mode_malformed_payload():
    service = EmbeddingService(dimensions=DIM, local_url="http://embedder:8001")

    with patch.object(
        httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=_local_response(200, {"vectors": []})
    ):
        with pytest.raises(EmbeddingError, match="Unexpected response"):
            await service.embed_text("Hello")

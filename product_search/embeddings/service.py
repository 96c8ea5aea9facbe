"""Embedding service interface and implementations."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from product_search.config import (
    EmbeddingProvider,
    EmbeddingSettings,
    get_settings,
)
from product_search.embeddings.models import EmbeddingResult, InputType
from product_search.embeddings.responses import parse_embedding_response
from product_search.exceptions import ConfigurationError, EmbeddingError, ErrorCode
from product_search.logging_config import get_logger
from product_search.observability.metrics import (
    track_cold_start_retry,
    track_embedding_request,
)

logger = get_logger(__name__)

# Error text a backend returns while the model deployment is still loading
COLD_START_MARKERS = (
    "model_deployment_timeout_exception",
    "waiting for trained model deployment",
)


def normalize_input(text: str, max_chars: int) -> str:
    """Trim and truncate text; blank input becomes a single space."""
    return text.strip()[:max_chars] or " "


def is_cold_start_message(message: str) -> bool:
    """Check whether an error message reports a cold model deployment."""
    return any(marker in message for marker in COLD_START_MARKERS)


class EmbeddingService(ABC):
    """Abstract base class for embedding services.

    Defines the interface for generating text embeddings.
    """

    @abstractmethod
    async def embed(
        self,
        text: str,
        input_type: InputType = InputType.SEARCH,
    ) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Text to embed.
            input_type: SEARCH for queries, INGEST for corpus text.

        Returns:
            EmbeddingResult with vector.

        Raises:
            EmbeddingError: If embedding fails.
        """
        ...

    @abstractmethod
    async def embed_batch(
        self,
        texts: list[str],
        input_type: InputType = InputType.INGEST,
    ) -> list[EmbeddingResult]:
        """Generate embeddings for multiple texts.

        Args:
            texts: List of texts to embed.
            input_type: SEARCH for queries, INGEST for corpus text.

        Returns:
            One EmbeddingResult per input, in input order.

        Raises:
            EmbeddingError: If any part of the batch fails.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None


class HTTPEmbeddingService(EmbeddingService):
    """Base for embedding backends reached over HTTP.

    Handles input normalization, chunking, the single cold-start retry,
    response parsing and the cardinality check. Subclasses describe the
    endpoint and request body.
    """

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP embedding service.

        Args:
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.

        Raises:
            ConfigurationError: If the backend is not fully configured.
        """
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None
        self._validate_settings()

    def _validate_settings(self) -> None:
        """Check backend-specific settings."""
        return None

    @abstractmethod
    def _endpoint(self) -> str:
        """Full URL of the embedding endpoint."""
        ...

    @abstractmethod
    def _build_payload(
        self,
        inputs: str | list[str],
        input_type: InputType,
    ) -> dict[str, Any]:
        """Request body for one call."""
        ...

    def _headers(self) -> dict[str, str]:
        """Request headers (auth)."""
        return {}

    def _params(self) -> dict[str, str]:
        """Query string parameters."""
        return {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    async def embed(
        self,
        text: str,
        input_type: InputType = InputType.SEARCH,
    ) -> EmbeddingResult:
        """Generate embedding for a single text."""
        normalized = normalize_input(text, self._settings.max_input_chars)
        results = await self._embed_request(normalized, [normalized], input_type)
        return results[0]

    async def embed_batch(
        self,
        texts: list[str],
        input_type: InputType = InputType.INGEST,
    ) -> list[EmbeddingResult]:
        """Generate embeddings for multiple texts.

        Texts are sent in chunks of ``batch_size``, one chunk at a time.
        A failing chunk aborts the whole call.
        """
        if not texts:
            return []

        inputs = [normalize_input(t, self._settings.max_input_chars) for t in texts]
        batch_size = self._settings.batch_size

        all_results: list[EmbeddingResult] = []
        for i in range(0, len(inputs), batch_size):
            batch = inputs[i : i + batch_size]
            all_results.extend(await self._embed_request(batch, batch, input_type))

        if len(all_results) != len(texts):
            raise EmbeddingError(
                f"Embedding count mismatch: got {len(all_results)}, "
                f"expected {len(texts)}",
                code=ErrorCode.EMBEDDING_COUNT_MISMATCH,
                details={"received": len(all_results), "expected": len(texts)},
            )

        return all_results

    async def _embed_request(
        self,
        request_input: str | list[str],
        texts: list[str],
        input_type: InputType,
    ) -> list[EmbeddingResult]:
        """Embed one request worth of texts, retrying once on cold start."""
        payload = self._build_payload(request_input, input_type)

        try:
            data = await self._post(payload, input_type, len(texts))
        except EmbeddingError as e:
            if not e.is_cold_start:
                raise
            backoff = self._settings.cold_start_backoff_seconds
            logger.warning(
                "Embedding model is still deploying, retrying once",
                extra={"model": self.model_name, "backoff_seconds": backoff},
            )
            track_cold_start_retry(self.model_name)
            await asyncio.sleep(backoff)
            data = await self._post(payload, input_type, len(texts))

        vectors = parse_embedding_response(data, expected_count=len(texts))

        return [
            EmbeddingResult(
                text=text,
                embedding=vector,
                model=self.model_name,
                dimensions=len(vector),
            )
            for text, vector in zip(texts, vectors, strict=True)
        ]

    async def _post(
        self,
        payload: dict[str, Any],
        input_type: InputType,
        batch_size: int,
    ) -> Any:
        """Send one embedding request and decode the JSON body.

        Raises:
            EmbeddingError: On transport failure, error status or bad JSON.
                Cold-start failures carry ``EMBEDDING_COLD_START``.
        """
        client = await self._get_client()
        url = self._endpoint()
        start_time = time.perf_counter()
        success = False

        try:
            response = await client.post(
                url,
                json=payload,
                params=self._params(),
                headers=self._headers(),
            )
            response.raise_for_status()
            data = response.json()
            success = True
            return data
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            body = e.response.text if isinstance(e.response.text, str) else ""
            cold = is_cold_start_message(body) or is_cold_start_message(str(e))
            logger.error(
                f"Embedding request failed: {status_code}",
                extra={"url": url, "status": status_code, "cold_start": cold},
            )
            raise EmbeddingError(
                f"Embedding service returned {status_code}",
                code=(
                    ErrorCode.EMBEDDING_COLD_START
                    if cold
                    else ErrorCode.EMBEDDING_SERVICE_ERROR
                ),
                details={"status_code": status_code},
            ) from e
        except httpx.RequestError as e:
            cold = is_cold_start_message(str(e))
            logger.error(
                f"Embedding request error: {e}",
                extra={"url": url, "cold_start": cold},
            )
            raise EmbeddingError(
                f"Failed to connect to embedding service: {e}",
                code=(
                    ErrorCode.EMBEDDING_COLD_START
                    if cold
                    else ErrorCode.EMBEDDING_SERVICE_ERROR
                ),
                details={"url": url},
            ) from e
        except ValueError as e:
            raise EmbeddingError(
                f"Invalid response from embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"error": str(e)},
            ) from e
        finally:
            track_embedding_request(
                model=self.model_name,
                input_type=input_type.value,
                duration=time.perf_counter() - start_time,
                batch_size=batch_size,
                success=success,
            )


class InferenceEmbeddingService(HTTPEmbeddingService):
    """Embedding service backed by a managed inference endpoint.

    Calls ``POST /_inference/text_embedding/{inference_id}`` with
    ``{"input": ..., "input_type": "SEARCH" | "INGEST"}``. The server-side
    timeout is generous so a cold deployment can finish loading.
    """

    SERVER_TIMEOUT = "2m"

    def _validate_settings(self) -> None:
        if not (self._settings.inference_id or "").strip():
            raise ConfigurationError(
                "EMBEDDING_INFERENCE_ID is not set",
                details={"provider": EmbeddingProvider.INFERENCE.value},
            )

    def _endpoint(self) -> str:
        inference_id = (self._settings.inference_id or "").strip()
        base_url = self._settings.base_url.rstrip("/")
        return f"{base_url}/_inference/text_embedding/{inference_id}"

    def _build_payload(
        self,
        inputs: str | list[str],
        input_type: InputType,
    ) -> dict[str, Any]:
        return {"input": inputs, "input_type": input_type.value}

    def _headers(self) -> dict[str, str]:
        if self._settings.api_key is None:
            return {}
        return {"Authorization": f"ApiKey {self._settings.api_key.get_secret_value()}"}

    def _params(self) -> dict[str, str]:
        return {"timeout": self.SERVER_TIMEOUT}


class OpenAIEmbeddingService(HTTPEmbeddingService):
    """Embedding service using an OpenAI-compatible ``/embeddings`` API.

    Also works with text-embeddings-inference (TEI) servers. The API has
    no query/corpus distinction, so ``input_type`` is accepted and ignored.
    """

    def _validate_settings(self) -> None:
        if "api.openai.com" in self._settings.base_url and self._settings.api_key is None:
            raise ConfigurationError(
                "EMBEDDING_API_KEY is required for the OpenAI API",
                details={"provider": EmbeddingProvider.OPENAI.value},
            )

    def _endpoint(self) -> str:
        return f"{self._settings.base_url.rstrip('/')}/embeddings"

    def _build_payload(
        self,
        inputs: str | list[str],
        input_type: InputType,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "input": inputs if isinstance(inputs, list) else [inputs],
            "model": self._settings.model,
        }
        if self._settings.dimensions is not None:
            payload["dimensions"] = self._settings.dimensions
        return payload

    def _headers(self) -> dict[str, str]:
        if self._settings.api_key is None:
            return {}
        return {"Authorization": f"Bearer {self._settings.api_key.get_secret_value()}"}


def create_embedding_service(
    settings: EmbeddingSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> HTTPEmbeddingService:
    """Build the embedding backend selected by configuration.

    Args:
        settings: Embedding configuration.
        client: Optional shared HTTP client.

    Returns:
        Configured embedding service.

    Raises:
        ConfigurationError: If the provider is unknown or incomplete.
    """
    settings = settings or get_settings().embedding

    if settings.provider == EmbeddingProvider.INFERENCE:
        return InferenceEmbeddingService(settings=settings, client=client)
    if settings.provider == EmbeddingProvider.OPENAI:
        return OpenAIEmbeddingService(settings=settings, client=client)

    raise ConfigurationError(
        f"Unknown embedding provider: {settings.provider}",
        details={"provider": str(settings.provider)},
    )

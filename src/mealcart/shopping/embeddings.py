"""Batched text embeddings via an OpenAI-compatible or Ollama endpoint."""
# mypy: ignore-errors

from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Callable, List, Optional, Sequence

import httpx

from mealcart import metrics
from mealcart.config import Settings, get_settings

logger = logging.getLogger(__name__)

Embedder = Callable[[Sequence[str]], List[List[float]]]


class EmbeddingError(RuntimeError):
    """The embedding endpoint failed or returned something we cannot trust."""


class EmbeddingClient:
    """Turn a batch of strings into vectors with one HTTP request."""

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        provider: str = "openai",
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._provider = (provider or "openai").strip().lower()
        self._api_key = api_key
        self._timeout = max(0.1, float(timeout))
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    def compute_embeddings(self, texts: Sequence[str]) -> List[List[float]]:
        """Return one vector per text, in input order.

        An empty batch returns ``[]`` without touching the network. Any failure,
        including a response whose shape does not line up with the request,
        raises ``EmbeddingError``.
        """

        texts = list(texts)
        if not texts:
            return []

        start = perf_counter()
        try:
            vectors = self._request(texts)
            _validate_vectors(vectors, expected=len(texts))
        except EmbeddingError:
            metrics.EMBEDDING_REQUESTS.labels(status="failed").inc()
            raise
        except httpx.HTTPError as exc:
            metrics.EMBEDDING_REQUESTS.labels(status="failed").inc()
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        metrics.EMBEDDING_REQUESTS.labels(status="succeeded").inc()
        logger.debug(
            "Embedded %s text(s) model=%s dim=%s duration_ms=%.2f",
            len(texts),
            self._model,
            len(vectors[0]),
            (perf_counter() - start) * 1000,
        )
        return vectors

    __call__ = compute_embeddings

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {"Authorization": f"Bearer {self._api_key}"}

    def _post(self, endpoint: str, payload: dict[str, object]) -> dict:
        with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
            response = client.post(endpoint, json=payload, headers=self._headers())
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as exc:
            raise EmbeddingError("Embedding endpoint returned non-JSON content.") from exc
        if not isinstance(body, dict):
            raise EmbeddingError("Embedding endpoint returned an unexpected payload.")
        return body

    def _request(self, texts: List[str]) -> List[List[float]]:
        if self._provider == "ollama":
            endpoint = self._base_url
            if not endpoint.endswith("/api/embed"):
                endpoint = f"{endpoint}/api/embed"
            body = self._post(endpoint, {"model": self._model, "input": texts})
            embeddings = body.get("embeddings")
            if not isinstance(embeddings, list):
                raise EmbeddingError("Ollama embedding response did not include embeddings.")
            return [_coerce_vector(vector) for vector in embeddings]

        endpoint = self._base_url
        if not endpoint.endswith("/embeddings"):
            endpoint = f"{endpoint}/embeddings"
        body = self._post(endpoint, {"model": self._model, "input": texts})
        data = body.get("data")
        if not isinstance(data, list):
            raise EmbeddingError("Embedding response did not include a data array.")

        entries = list(data)
        if entries and all(
            isinstance(entry, dict) and isinstance(entry.get("index"), int) for entry in entries
        ):
            entries.sort(key=lambda entry: entry["index"])
            indices = [entry["index"] for entry in entries]
            if indices != list(range(len(entries))):
                raise EmbeddingError(f"Embedding response indices are not contiguous: {indices}")
        return [
            _coerce_vector(entry.get("embedding") if isinstance(entry, dict) else None)
            for entry in entries
        ]


def _coerce_vector(raw: object) -> List[float]:
    if not isinstance(raw, list) or not raw:
        raise EmbeddingError("Embedding vector is missing or empty.")
    vector: List[float] = []
    for value in raw:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EmbeddingError(f"Embedding vector holds a non-numeric value: {value!r}")
        if not math.isfinite(value):
            raise EmbeddingError("Embedding vector holds a non-finite value.")
        vector.append(float(value))
    return vector


def _validate_vectors(vectors: List[List[float]], *, expected: int) -> None:
    if len(vectors) != expected:
        raise EmbeddingError(
            f"Embedding response returned {len(vectors)} vector(s) for {expected} input(s)."
        )
    dims = {len(vector) for vector in vectors}
    if len(dims) > 1:
        raise EmbeddingError(f"Embedding response mixes vector dimensions: {sorted(dims)}")


def build_embedding_client(settings: Settings | None = None) -> EmbeddingClient | None:
    """Create an embedding client when an endpoint is configured."""

    settings = settings or get_settings()
    if not settings.embedding_base_url:
        logger.debug("No embedding base URL configured; ingredient matching disabled.")
        return None

    return EmbeddingClient(
        base_url=settings.embedding_base_url,
        model=settings.embedding_model,
        provider=settings.embedding_provider,
        api_key=settings.embedding_api_key,
        timeout=settings.embedding_timeout,
    )


__all__ = ["Embedder", "EmbeddingClient", "EmbeddingError", "build_embedding_client"]

"""HuggingFace Inference API client.

Classification and embedding are delegated to the hosted models; the only
math done locally is cosine similarity between two embedding vectors.
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Protocol, Sequence, TypeVar

import httpx
import numpy as np

from app.core.errors import ConfigurationError, UpstreamError
from app.core.logging import get_logger
from app.schemas.inference import Classification

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

MODELS = {
    "sentiment": "cardiffnlp/twitter-roberta-base-sentiment-latest",
    "embeddings": "sentence-transformers/all-MiniLM-L6-v2",
    "classification": "facebook/bart-large-mnli",
    "emotion": "j-hartmann/emotion-english-distilroberta-base",
}


class InferenceProvider(Protocol):
    def classify(self, text: str, model: str) -> Classification: ...

    def embed(self, text: str, model: str) -> list[float]: ...


class HuggingFaceClient:
    def __init__(self, api_key: str, base_url: str, timeout_seconds: float = 30.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        self._client.close()

    def _post(self, model: str, inputs: str) -> Any:
        if not self.api_key:
            raise ConfigurationError("HUGGINGFACE_API_KEY environment variable is required")

        url = f"{self.base_url}/models/{model}"
        try:
            response = self._client.post(
                url,
                json={"inputs": inputs},
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"Inference request to {model} failed",
                {"status": e.response.status_code, "body": e.response.text[:200]},
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Inference request to {model} failed", {"message": str(e)}) from e
        return response.json()

    def classify(self, text: str, model: str) -> Classification:
        """Top label for the text."""
        payload = self._post(model, text)
        # Text classification returns [[{label, score}, ...]] for a single input
        candidates = payload[0] if payload and isinstance(payload[0], list) else payload
        if not candidates:
            raise UpstreamError(f"Empty classification from {model}")
        best = max(candidates, key=lambda c: c["score"])
        return Classification(label=best["label"], score=float(best["score"]))

    def embed(self, text: str, model: str) -> list[float]:
        """Sentence embedding; token-level outputs are mean-pooled."""
        payload = self._post(model, text)
        vector = np.asarray(payload, dtype=float)
        while vector.ndim > 1:
            vector = vector.mean(axis=0)
        if vector.size == 0:
            raise UpstreamError(f"Empty embedding from {model}")
        return vector.tolist()


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    a = np.asarray(vec_a, dtype=float)
    b = np.asarray(vec_b, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"Embedding dimensions differ: {a.shape} vs {b.shape}")
    magnitude = float(np.linalg.norm(a) * np.linalg.norm(b))
    if magnitude == 0.0:
        return 0.0
    return float(np.dot(a, b) / magnitude)


def parallel_map(fn: Callable[[T], R], items: Iterable[T], max_workers: int) -> list[R]:
    """Run fn over items concurrently and join every result.

    The first exception raised by any call propagates; no partial results are returned.
    """
    items = list(items)
    if not items:
        return []
    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as executor:
        return list(executor.map(fn, items))

from __future__ import annotations

import hashlib
import logging
import math
import re
from typing import List, Optional

import requests

from .config import EmbeddingSettings
from .errors import ConfigurationError, EmbeddingError, InvalidArgumentError

logger = logging.getLogger(__name__)


class Embedder:
    """text -> fixed-dimension vector. One model call per `embed`, no caching."""

    @property
    def dimension(self) -> int:
        raise NotImplementedError

    def embed(self, text: str) -> List[float]:
        raise NotImplementedError


class OpenAIEmbedder(Embedder):
    """
    Thin wrapper around the OpenAI /embeddings endpoint.
    Any transport, HTTP or payload problem surfaces as EmbeddingError.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key
        self._model = model
        self._dim = dimension
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def dimension(self) -> int:
        return self._dim

    def embed(self, text: str) -> List[float]:
        url = f"{self._base_url}/embeddings"
        payload = {"model": self._model, "input": text}
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            resp = self._session.post(url, json=payload, headers=headers, timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Embedding request failed: %s", e)
            raise EmbeddingError(f"Embedding request to {self._model} failed", cause=e) from e

        # {"data": [{"embedding": [...], "index": 0}], "model": "...", ...}
        try:
            vector = [float(x) for x in data["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingError("Embedding response has no vector", cause=e) from e

        if len(vector) != self._dim:
            raise EmbeddingError(
                "Embedding dimension mismatch",
                details={"expected": self._dim, "actual": len(vector), "model": self._model},
            )
        return vector


_TOKEN_RE = re.compile(r"[a-z0-9\+\#\.\-]{2,}", re.IGNORECASE)


class LocalHashingEmbedder(Embedder):
    """
    Offline hashing embedder for development without an API key.
    Unigrams plus half-weight bigrams hashed into `dimension` buckets, L2-normalized.
    """

    def __init__(self, dimension: int = 384):
        if dimension <= 0:
            raise InvalidArgumentError("dimension must be positive", details={"dimension": dimension})
        self._dim = dimension

    @property
    def dimension(self) -> int:
        return self._dim

    def _bucket(self, token: str) -> int:
        digest = hashlib.blake2b(token.encode("utf-8", errors="ignore"), digest_size=8).digest()
        return int.from_bytes(digest, "little") % self._dim

    def embed(self, text: str) -> List[float]:
        vec = [0.0] * self._dim
        tokens = _TOKEN_RE.findall(text.lower())
        for left, right in zip(tokens, tokens[1:] + [None]):
            vec[self._bucket(left)] += 1.0
            if right is not None:
                vec[self._bucket(f"{left}_{right}")] += 0.5

        norm = math.sqrt(sum(x * x for x in vec)) or 1.0
        return [x / norm for x in vec]


def make_embedder(cfg: EmbeddingSettings) -> Embedder:
    if cfg.provider == "local":
        return LocalHashingEmbedder(dimension=cfg.dimension)
    if cfg.provider == "openai":
        if not cfg.api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        return OpenAIEmbedder(
            api_key=cfg.api_key,
            model=cfg.model,
            dimension=cfg.dimension,
            base_url=cfg.base_url,
            timeout=cfg.timeout_seconds,
        )
    raise ConfigurationError(f"Unsupported embedding provider: {cfg.provider}")

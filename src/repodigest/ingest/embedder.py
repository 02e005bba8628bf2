"""Embedder — summary text to a fixed-dimension vector.

Returns ``[]`` for empty input and for any failure; callers treat an empty
vector as "no embedding available" and skip the vector write.
"""

from __future__ import annotations

from repodigest.logger import get_logger
from repodigest.rag import llm_client

log = get_logger(__name__)


class Embedder:
    """Embed text via LiteLLM.

    Args:
        model:       LiteLLM embedding model string.
        dimensions:  Expected vector length; other lengths count as failures.
        num_retries: LiteLLM retries per call.
        timeout:     Seconds per call.
    """

    def __init__(
        self,
        model: str = "gemini/text-embedding-004",
        dimensions: int = 768,
        num_retries: int = 3,
        timeout: float = 60.0,
    ) -> None:
        self.model = model
        self.dimensions = dimensions
        self._num_retries = num_retries
        self._timeout = timeout

    async def embed(self, text: str) -> list[float]:
        if not text.strip():
            return []
        try:
            vector = await llm_client.embed(
                self.model, text, num_retries=self._num_retries, timeout=self._timeout
            )
        except Exception as exc:
            log.warning("embedding_failed", model=self.model, error=str(exc))
            return []
        if len(vector) != self.dimensions:
            log.warning(
                "embedding_dimension_mismatch",
                model=self.model,
                expected=self.dimensions,
                got=len(vector),
            )
            return []
        return [float(v) for v in vector]

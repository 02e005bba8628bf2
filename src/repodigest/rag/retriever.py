"""Dense retriever over document summaries.

The question is embedded with the same model used at ingest time and matched
against stored summary vectors by cosine distance:
  similarity = 1 - cosine_distance
"""

from __future__ import annotations

from dataclasses import dataclass

from repodigest.db.store import PersistenceStore
from repodigest.errors import ValidationError
from repodigest.ingest.embedder import Embedder
from repodigest.logger import get_logger

log = get_logger(__name__)


@dataclass
class SearchHit:
    """A retrieved document.

    Attributes:
        document_id: Row id in the documents table.
        file_name:   Repository-relative path of the file.
        summary:     Stored summary that matched.
        similarity:  Cosine similarity to the question (higher = closer).
    """

    document_id: int
    file_name: str
    summary: str
    similarity: float


class Retriever:
    """Semantic search within one project's documents.

    Args:
        store:    PersistenceStore holding the document vectors.
        embedder: Embedder configured with the ingest embedding model.
    """

    def __init__(self, store: PersistenceStore, embedder: Embedder) -> None:
        self._store = store
        self._embedder = embedder

    async def search(self, project_id: str, question: str, top_k: int = 10) -> list[SearchHit]:
        """Return up to *top_k* documents closest to *question*, best-first.

        An empty question or a failed embedding yields ``[]``.

        Raises:
            ValidationError: Empty project id or non-positive *top_k*.
        """
        if not project_id or not project_id.strip():
            raise ValidationError("project_id must not be empty")
        if top_k < 1:
            raise ValidationError("top_k must be at least 1")

        vector = await self._embedder.embed(question)
        if not vector:
            log.info("search_without_embedding", project_id=project_id)
            return []

        matches = await self._store.search_documents(project_id, vector, limit=top_k)
        return [
            SearchHit(
                document_id=doc.id,
                file_name=doc.file_name,
                summary=doc.summary,
                similarity=1.0 - distance,
            )
            for doc, distance in matches
        ]

"""IngestionCoordinator — repository → summaries → embeddings → store.

Per document, in order:
1. Summarize the source file.
2. Embed the *summary* (sentinel summaries are not embedded).
3. Insert the document row without an embedding.
4. If a vector was produced, write it in a second step.

Documents are processed concurrently and settle independently: a failure is
recorded against that file and never cancels its siblings.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from repodigest.db.store import PersistenceStore
from repodigest.errors import ValidationError
from repodigest.ingest.embedder import Embedder
from repodigest.ingest.repository_source import RepositorySource, SourceFile
from repodigest.ingest.summarizer import Summarizer, is_sentinel
from repodigest.logger import get_logger

log = get_logger(__name__)


@dataclass
class IngestResult:
    """Tally of one ingestion run.

    ``succeeded`` counts persisted rows, including the ``without_embedding``
    ones. ``failures`` maps file path to error message for rows never written.
    """

    succeeded: int = 0
    failed: int = 0
    without_embedding: int = 0
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


@dataclass
class _Outcome:
    path: str
    document_id: int | None = None
    embedded: bool = False
    error: str | None = None


class IngestionCoordinator:
    """Run ingestion for one project against an injected store.

    Args:
        store:      PersistenceStore the rows are written to.
        source:     RepositorySource used to list and fetch files.
        summarizer: Summarizer for source files.
        embedder:   Embedder for summaries.
        branch:     Branch to ingest.
    """

    def __init__(
        self,
        store: PersistenceStore,
        source: RepositorySource,
        summarizer: Summarizer,
        embedder: Embedder,
        branch: str = "main",
    ) -> None:
        self._store = store
        self._source = source
        self._summarizer = summarizer
        self._embedder = embedder
        self._branch = branch

    async def ingest(
        self, project_id: str, github_url: str, token: str | None = None
    ) -> IngestResult:
        """Ingest every file of *github_url* into *project_id*.

        Raises:
            ValidationError: Empty project id or malformed URL.
            AuthError, NotFoundError, ForbiddenError: Repository could not be
                loaded; nothing was written.
        """
        if not project_id or not project_id.strip():
            raise ValidationError("project_id must not be empty")

        log.info("ingest_started", project_id=project_id, url=github_url, branch=self._branch)
        files = await self._source.load(github_url, branch=self._branch, token=token)

        outcomes = await asyncio.gather(
            *(self._process(project_id, f) for f in files)
        )

        result = IngestResult()
        for outcome in outcomes:
            if outcome.error is not None:
                result.failed += 1
                result.failures[outcome.path] = outcome.error
                continue
            result.succeeded += 1
            if not outcome.embedded:
                result.without_embedding += 1

        log.info(
            "ingest_finished",
            project_id=project_id,
            succeeded=result.succeeded,
            failed=result.failed,
            without_embedding=result.without_embedding,
        )
        return result

    async def _process(self, project_id: str, file: SourceFile) -> _Outcome:
        outcome = _Outcome(path=file.path)
        try:
            summary = await self._summarizer.summarize_code(file.path, file.content)
            vector: list[float] = []
            if not is_sentinel(summary):
                vector = await self._embedder.embed(summary)

            outcome.document_id = await self._store.create_document(
                project_id, file.path, file.content, summary
            )
            if vector:
                await self._store.update_document_embedding(outcome.document_id, vector)
                outcome.embedded = True
        except Exception as exc:
            if outcome.document_id is not None:
                # row exists; only the vector write failed
                log.warning(
                    "embedding_write_failed",
                    path=file.path,
                    document_id=outcome.document_id,
                    error=str(exc),
                )
                return outcome
            log.warning("document_failed", path=file.path, error=str(exc))
            outcome.error = str(exc) or type(exc).__name__
        return outcome

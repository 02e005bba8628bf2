"""CommitTracker — summarize and persist commits not seen before.

A poll reads the latest upstream commits, drops those whose hash is already
stored for the project, summarizes the rest concurrently and writes them in
one bulk insert, newest first.

The hash read and the bulk insert are separate store calls. Two polls of the
same project running at once can therefore both insert the same commit.
"""

from __future__ import annotations

import asyncio
import uuid

from repodigest.db.models import Commit
from repodigest.db.store import PersistenceStore
from repodigest.errors import ValidationError
from repodigest.ingest.commit_source import CommitInfo, CommitSource
from repodigest.ingest.summarizer import Sentinel, Summarizer
from repodigest.logger import get_logger

log = get_logger(__name__)


class CommitTracker:
    """Incremental commit summarization for one store.

    Args:
        store:      PersistenceStore holding projects and commits.
        source:     CommitSource for commit listings and diffs.
        summarizer: Summarizer for diffs.
        limit:      Upstream commits considered per poll.
    """

    def __init__(
        self,
        store: PersistenceStore,
        source: CommitSource,
        summarizer: Summarizer,
        limit: int = 10,
    ) -> None:
        self._store = store
        self._source = source
        self._summarizer = summarizer
        self._limit = limit

    async def poll(self, project_id: str, token: str | None = None) -> list[Commit]:
        """Persist summaries of new commits and return the inserted rows.

        GitHub requests use *token*, else the token stored with the project,
        else ``GITHUB_TOKEN``.

        Raises:
            ValidationError: Empty project id, or stored URL is malformed.
            NotFoundError: Unknown project, or repository not found upstream.
            PersistenceError: The bulk insert failed; nothing was written.
        """
        if not project_id or not project_id.strip():
            raise ValidationError("project_id must not be empty")

        github_url = await self._store.find_project_github_url(project_id)
        token = token or await self._store.find_project_github_token(project_id)
        upstream = await self._source.latest_commits(github_url, limit=self._limit, token=token)
        seen = set(await self._store.list_commit_hashes(project_id))
        unseen = [c for c in upstream if c.commit_hash not in seen]

        if not unseen:
            log.info("poll_no_new_commits", project_id=project_id, upstream=len(upstream))
            return []

        summaries = await asyncio.gather(
            *(self._summarize(github_url, c, token) for c in unseen)
        )
        rows = [
            Commit(
                id=str(uuid.uuid4()),
                project_id=project_id,
                commit_hash=info.commit_hash,
                commit_message=info.commit_message,
                commit_author_name=info.commit_author_name,
                commit_author_avatar=info.commit_author_avatar,
                commit_date=info.commit_date,
                summary=summary,
            )
            for info, summary in zip(unseen, summaries)
        ]
        inserted = await self._store.bulk_insert_commits(rows)
        log.info("poll_finished", project_id=project_id, inserted=inserted)
        return rows

    async def _summarize(self, github_url: str, info: CommitInfo, token: str | None) -> str:
        """Summary for one commit; a sentinel string on any failure."""
        try:
            diff = await self._source.fetch_diff(github_url, info.commit_hash, token=token)
            if not diff.ok:
                return diff.failure.sentinel.value
            return await self._summarizer.summarize_diff(diff.text)
        except Exception as exc:
            log.warning("commit_summary_failed", commit=info.commit_hash, error=str(exc))
            return Sentinel.MODEL_FAILURE.value

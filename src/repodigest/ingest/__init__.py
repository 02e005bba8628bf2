"""repodigest ingest pipelines — repository ingestion and commit tracking."""

from repodigest.ingest.commit_source import CommitInfo, CommitSource, DiffFailure, DiffResult
from repodigest.ingest.commit_tracker import CommitTracker
from repodigest.ingest.coordinator import IngestionCoordinator, IngestResult
from repodigest.ingest.embedder import Embedder
from repodigest.ingest.repository_source import RepositorySource, SourceFile
from repodigest.ingest.summarizer import Sentinel, Summarizer

__all__ = [
    "CommitInfo",
    "CommitSource",
    "CommitTracker",
    "DiffFailure",
    "DiffResult",
    "Embedder",
    "IngestResult",
    "IngestionCoordinator",
    "RepositorySource",
    "Sentinel",
    "SourceFile",
    "Summarizer",
]

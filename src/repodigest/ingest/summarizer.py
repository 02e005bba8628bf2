"""Summarizer — natural-language summaries of source files and commit diffs.

Inputs are truncated before they reach the model. Empty input short-circuits
to a placeholder without a model call, and any model failure (exception or
empty answer) yields a fixed sentinel string. Neither method raises.
"""

from __future__ import annotations

from enum import Enum

from repodigest.logger import get_logger
from repodigest.rag import llm_client

log = get_logger(__name__)

_DEFAULT_MODEL = "gemini/gemini-1.5-flash"
_DEFAULT_MAX_TOKENS = 300
CODE_MAX_CHARS = 10_000
DIFF_MAX_CHARS = 50_000
DIFF_TRUNCATION_MARKER = "\n[... diff truncated ...]"


class Sentinel(str, Enum):
    """Fixed summaries stored in place of a model answer."""

    EMPTY_FILE = "Empty file"
    NO_CHANGES = "No significant changes"
    MODEL_FAILURE = "Summary unavailable: language model error"
    DIFF_NOT_FOUND = "Summary unavailable: commit diff not found"
    DIFF_FORBIDDEN = "Summary unavailable: access to commit diff forbidden"
    DIFF_TIMEOUT = "Summary unavailable: commit diff request timed out"
    DIFF_NETWORK = "Summary unavailable: network error while fetching commit diff"


_SENTINEL_VALUES = frozenset(s.value for s in Sentinel)


def is_sentinel(summary: str) -> bool:
    """True if *summary* is one of the fixed placeholder strings."""
    return summary in _SENTINEL_VALUES


_CODE_PROMPT = """\
You are a senior software engineer onboarding a junior engineer onto a codebase.
Explain the purpose of the file {path} in no more than 100 words: what it \
does, the main functions or classes it defines, and how it fits into the project.

Source (may be truncated):
```
{content}
```

Summary:"""

_DIFF_PROMPT = """\
You are an expert programmer summarizing a git diff.

Every line of the diff starts with a prefix:
- a line starting with 'diff' is a metadata line (for example: 'diff --git a/lib/index.js b/lib/index.js')
- a line starting with '+' was added in this commit
- a line starting with '-' was removed in this commit
- any other line is unchanged code, shown only for context

Example summary comments:
- Raised the amount of returned post padding from .10 to .12
- Fixed a typo on the fifth column of the table
- Added an optional API for completion
- Widened numeric tolerances for testing

Write a few comments in the same format as the examples. Summarize only the \
added and removed lines; do not describe unchanged context. If no part of the \
diff is meaningful, answer "{no_changes}".

```diff
{diff}
```
"""


def truncate(text: str, limit: int, marker: str = "") -> str:
    """Cut *text* to *limit* characters, appending *marker* only when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker


class Summarizer:
    """Summarize code and diffs via LiteLLM.

    Args:
        model:          LiteLLM model string for summary generation.
        max_tokens:     Maximum tokens in a generated summary.
        code_max_chars: Source characters sent to the model per file.
        diff_max_chars: Diff characters sent to the model per commit.
        num_retries:    LiteLLM retries per call.
        timeout:        Seconds per model call.
    """

    def __init__(
        self,
        model: str = _DEFAULT_MODEL,
        max_tokens: int = _DEFAULT_MAX_TOKENS,
        code_max_chars: int = CODE_MAX_CHARS,
        diff_max_chars: int = DIFF_MAX_CHARS,
        num_retries: int = 3,
        timeout: float = 60.0,
    ) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._code_max_chars = code_max_chars
        self._diff_max_chars = diff_max_chars
        self._num_retries = num_retries
        self._timeout = timeout

    async def summarize_code(self, path: str, content: str) -> str:
        if not content.strip():
            return Sentinel.EMPTY_FILE.value
        prompt = _CODE_PROMPT.format(
            path=path, content=truncate(content, self._code_max_chars)
        )
        summary = await self._generate(prompt, subject=path)
        return summary or Sentinel.MODEL_FAILURE.value

    async def summarize_diff(self, diff: str) -> str:
        if not diff.strip():
            return Sentinel.NO_CHANGES.value
        prompt = _DIFF_PROMPT.format(
            diff=truncate(diff, self._diff_max_chars, DIFF_TRUNCATION_MARKER),
            no_changes=Sentinel.NO_CHANGES.value,
        )
        summary = await self._generate(prompt, subject="diff")
        return summary or Sentinel.MODEL_FAILURE.value

    async def _generate(self, prompt: str, subject: str) -> str:
        """Return the stripped model answer, or "" on any failure."""
        try:
            text = await llm_client.complete(
                self._model,
                [{"role": "user", "content": prompt}],
                max_tokens=self._max_tokens,
                num_retries=self._num_retries,
                timeout=self._timeout,
            )
        except Exception as exc:
            log.warning("summary_failed", subject=subject, model=self._model, error=str(exc))
            return ""
        text = text.strip()
        if not text:
            log.warning("summary_empty", subject=subject, model=self._model)
        return text

"""Checklist → GitHub issues: draft derivation, paced batch execution, and the pipeline entry point."""

import logging
import re
import time
from collections.abc import Callable, Sequence

from gitpolish.clients.github import GitHubClient
from gitpolish.clients.llm import LlmClient
from gitpolish.errors import LlmError, PolishError, RateLimitError
from gitpolish.models import ChecklistOutline, CreatedIssue, FailedIssue, IssueBatchResult, IssueDraft
from gitpolish.outline import normalize_outline
from gitpolish.prompts import ENHANCE_TASK

logger = logging.getLogger(__name__)

TITLE_MAX_LEN = 100
PACING_DELAY = 0.1  # seconds between successful issue creations
MAX_RATE_LIMIT_WAIT = 60.0
BASE_LABELS = ("checklist", "task")

# First match wins, in this order.
_CONTENT_LABELS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("bug", ("bug", "fix")),
    ("enhancement", ("feature", "add")),
    ("documentation", ("doc", "readme")),
    ("testing", ("test",)),
)

_TEMPLATE_BODY = """\
## Task

{task}

**Section:** {section}
**Subsection:** {subsection}

## Checklist

- [ ] Review the requirements
- [ ] Implement the change
- [ ] Test the change
- [ ] Update documentation
- [ ] Close this issue

---
_Created from a repository checklist by git-polish._
"""

ResultCallback = Callable[[CreatedIssue | FailedIssue], None]


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------


def _slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def make_title(task: str, heading: str | None) -> str:
    title = f"[{heading}] {task}" if heading else task
    if len(title) > TITLE_MAX_LEN:
        title = title[: TITLE_MAX_LEN - 3] + "..."
    return title


def derive_labels(task: str, section: str | None) -> list[str]:
    labels = list(BASE_LABELS)
    if section and (slug := _slugify(section)):
        labels.append(slug)
    lowered = task.lower()
    for label, keywords in _CONTENT_LABELS:
        if any(keyword in lowered for keyword in keywords):
            labels.append(label)
            break
    return list(dict.fromkeys(labels))


def template_body(task: str, section: str | None, subsection: str | None) -> str:
    return _TEMPLATE_BODY.format(task=task, section=section or "General", subsection=subsection or "none")


def enhanced_body(llm: LlmClient, task: str, section: str | None, subsection: str | None) -> str:
    prompt = ENHANCE_TASK.format(task=task, section=section or "General", subsection=subsection or "none")
    try:
        return llm.complete(prompt)
    except LlmError as exc:
        logger.warning("Could not enhance %r, using minimal body: %s", task, exc)
        return f"**Task:** {task}"


def drafts_from_outline(
    outline: ChecklistOutline,
    enhance_with_ai: bool,
    llm: LlmClient | None = None,
) -> list[IssueDraft]:
    """One IssueDraft per outline task, in outline order."""
    if enhance_with_ai and llm is None:
        raise ValueError("enhance_with_ai requires an LlmClient")

    drafts = []
    for section, subsection, task in outline.iter_tasks():
        section_title = section.title or None
        subsection_title = subsection.title if subsection and subsection.title else None
        if enhance_with_ai and llm is not None:
            body = enhanced_body(llm, task, section_title, subsection_title)
        else:
            body = template_body(task, section_title, subsection_title)
        drafts.append(
            IssueDraft(
                title=make_title(task, subsection_title or section_title),
                body=body,
                labels=derive_labels(task, section_title),
            )
        )
    return drafts


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def execute_batch(
    github: GitHubClient,
    owner: str,
    repo: str,
    drafts: Sequence[IssueDraft],
    *,
    sleep: Callable[[float], None] = time.sleep,
    on_result: ResultCallback | None = None,
) -> IssueBatchResult:
    """Create one issue per draft, strictly in order.

    A failed draft is recorded in `failed` and the batch moves on; nothing is retried.
    Successful creations are followed by PACING_DELAY, except after the final draft.
    """
    result = IssueBatchResult(total=len(drafts))
    last = len(drafts) - 1

    for index, draft in enumerate(drafts):
        try:
            issue = github.create_issue(owner, repo, draft.title, draft.body, draft.labels)
        except PolishError as exc:
            logger.warning("Failed to create issue %r: %s", draft.title, exc)
            failure = FailedIssue(draft=draft, error=str(exc))
            result.failed.append(failure)
            if on_result:
                on_result(failure)
            if isinstance(exc, RateLimitError) and exc.retry_after and index < last:
                sleep(min(exc.retry_after, MAX_RATE_LIMIT_WAIT))
            continue

        logger.debug("Created #%d %s", issue.number, issue.title)
        result.created.append(issue)
        if on_result:
            on_result(issue)
        if index < last:
            sleep(PACING_DELAY)

    return result


def parse_checklist_and_create_issues(
    github: GitHubClient,
    llm: LlmClient,
    owner: str,
    repo: str,
    raw_text: str,
    enhance_with_ai: bool,
    *,
    sleep: Callable[[float], None] = time.sleep,
    on_result: ResultCallback | None = None,
) -> IssueBatchResult:
    """Normalize raw_text, derive drafts and create the issues.

    Raises EmptyChecklistError before any GitHub call when no tasks are found.
    Once creation starts, failures are reported per item in the returned result.
    """
    outline = normalize_outline(raw_text, llm)
    drafts = drafts_from_outline(outline, enhance_with_ai, llm)
    logger.info("Creating %d issues in %s/%s", len(drafts), owner, repo)
    return execute_batch(github, owner, repo, drafts, sleep=sleep, on_result=on_result)

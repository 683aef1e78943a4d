"""README, description and checklist generation for a repository."""

import logging
import re

from gitpolish.clients.github import GitHubClient
from gitpolish.clients.llm import LlmClient
from gitpolish.errors import ResourceNotFoundError
from gitpolish.models import Repository
from gitpolish.prompts import GENERATE_CHECKLIST, GENERATE_DESCRIPTION, GENERATE_README, REGENERATE_README

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LEN = 350  # GitHub rejects longer repository descriptions
README_PROMPT_MAX_CHARS = 8000

_FENCE_RE = re.compile(r"^\s*```[\w-]*\s*\n(.*?)\n\s*```\s*$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a single code fence wrapping the whole reply."""
    if match := _FENCE_RE.match(text):
        return match.group(1).strip() + "\n"
    return text.strip() + "\n"


def _repo_context(github: GitHubClient, owner: str, repo: str) -> tuple[Repository, str, str]:
    info = github.get_repo(owner, repo)
    try:
        files = "\n".join(f"- {name}" for name in github.list_contents(owner, repo))
    except ResourceNotFoundError:
        files = "(empty repository)"
    readme = github.get_readme(owner, repo)
    readme_text = readme.content[:README_PROMPT_MAX_CHARS] if readme else "(none)"
    return info, files, readme_text


def generate_readme(github: GitHubClient, llm: LlmClient, owner: str, repo: str) -> str:
    info, files, readme_text = _repo_context(github, owner, repo)
    prompt = GENERATE_README.format(
        full_name=info.full_name,
        description=info.description or "No description provided",
        language=info.language or "Unknown",
        stars=info.stargazers_count,
        forks=info.forks_count,
        files=files,
        readme=readme_text,
    )
    return strip_code_fence(llm.complete(prompt))


def regenerate_readme(llm: LlmClient, current: str, suggestions: str) -> str:
    return strip_code_fence(llm.complete(REGENERATE_README.format(suggestions=suggestions, readme=current)))


def generate_description(github: GitHubClient, llm: LlmClient, owner: str, repo: str) -> str:
    readme = github.get_readme(owner, repo)
    if readme is None:
        raise ResourceNotFoundError("generate description", 404, f"{owner}/{repo} has no README")
    prompt = GENERATE_DESCRIPTION.format(
        limit=DESCRIPTION_MAX_LEN,
        full_name=f"{owner}/{repo}",
        readme=readme.content[:README_PROMPT_MAX_CHARS],
    )
    description = " ".join(llm.complete(prompt).split()).strip("\"'")
    if len(description) > DESCRIPTION_MAX_LEN:
        logger.debug("Truncating description of %d chars", len(description))
        description = description[: DESCRIPTION_MAX_LEN - 3].rstrip() + "..."
    return description


def generate_checklist(github: GitHubClient, llm: LlmClient, owner: str, repo: str) -> str:
    info, files, readme_text = _repo_context(github, owner, repo)
    prompt = GENERATE_CHECKLIST.format(
        full_name=info.full_name,
        description=info.description or "No description provided",
        language=info.language or "Unknown",
        files=files,
        readme=readme_text,
    )
    return strip_code_fence(llm.complete(prompt))

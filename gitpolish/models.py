"""Shared pydantic models: the contract between clients, the auth flow, the pipeline and main.py."""

from collections.abc import Iterator
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class AuthState(StrEnum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    EXPIRED = "expired"
    DENIED = "denied"
    ERROR = "error"


TERMINAL_STATES = frozenset({AuthState.AUTHORIZED, AuthState.EXPIRED, AuthState.DENIED, AuthState.ERROR})


class DeviceAuthSession(BaseModel):
    """One device authorization attempt. Only DeviceAuthFlow.poll_once produces new states."""

    model_config = ConfigDict(frozen=True)

    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    expires_at: float  # on the flow's clock
    poll_interval: float
    state: AuthState = AuthState.PENDING
    token: str | None = Field(default=None, repr=False)  # set only when AUTHORIZED
    error: str | None = None  # set only when ERROR
    attempts: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class GitHubUser(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    login: str
    name: str | None = None
    html_url: str | None = None


class Repository(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    full_name: str
    owner: str
    description: str | None = None
    html_url: str
    private: bool = False
    language: str | None = None
    stargazers_count: int = 0
    forks_count: int = 0


class ReadmeFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    sha: str
    content: str  # decoded text


# ---------------------------------------------------------------------------
# Checklist outline
# ---------------------------------------------------------------------------


class Subsection(BaseModel):
    title: str
    tasks: list[str] = []


class Section(BaseModel):
    title: str
    tasks: list[str] = []  # tasks with no enclosing subsection
    subsections: list[Subsection] = []


class ChecklistOutline(BaseModel):
    sections: list[Section] = []

    def iter_tasks(self) -> Iterator[tuple[Section, Subsection | None, str]]:
        """Yield (section, subsection, task) in issue-creation order."""
        for section in self.sections:
            for task in section.tasks:
                yield section, None, task
            for subsection in section.subsections:
                for task in subsection.tasks:
                    yield section, subsection, task

    @property
    def task_count(self) -> int:
        return sum(1 for _ in self.iter_tasks())


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------


class IssueDraft(BaseModel):
    """An issue payload computed from one outline task, not yet sent to GitHub."""

    model_config = ConfigDict(frozen=True)

    title: str
    body: str
    labels: list[str] = []  # de-duplicated; order carries no meaning


class CreatedIssue(BaseModel):
    """Returned by create_issue; just what the caller needs."""

    model_config = ConfigDict(frozen=True)

    number: int
    title: str
    url: str | None = None


class FailedIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    draft: IssueDraft
    error: str


class IssueBatchResult(BaseModel):
    created: list[CreatedIssue] = []
    failed: list[FailedIssue] = []
    total: int = 0

"""Shared test fixtures."""

from collections.abc import Callable, Iterable

import pytest

import gitpolish.settings as settings_module
from gitpolish.clients.github import GitHubClient
from gitpolish.clients.llm import LlmClient
from gitpolish.errors import LlmError
from gitpolish.models import IssueDraft


class FakeLlm(LlmClient):
    """Replies are consumed in order; an Exception reply is raised. Runs dry -> LlmError."""

    def __init__(self, replies: Iterable[str | Exception] = ()) -> None:
        self.replies = list(replies)
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise LlmError("no reply configured")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_lru_cache():
    settings_module._load_toml.cache_clear()
    yield
    settings_module._load_toml.cache_clear()


@pytest.fixture
def fake_llm() -> Callable[..., FakeLlm]:
    return FakeLlm


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def github() -> GitHubClient:
    return GitHubClient("ghp_test")


@pytest.fixture
def drafts() -> list[IssueDraft]:
    return [
        IssueDraft(title=f"[Docs] Task {n}", body=f"**Task:** Task {n}", labels=["checklist", "task", "docs"])
        for n in range(1, 6)
    ]

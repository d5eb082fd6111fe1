"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from formsubmit.trace import MutationLog


@pytest.fixture(autouse=True)
def formsubmit_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the formsubmit home at a temporary directory."""
    home = tmp_path / "formsubmit-home"
    monkeypatch.setenv("FORMSUBMIT_HOME", str(home))
    monkeypatch.delenv("FORMSUBMIT_LOG_LEVEL", raising=False)
    return home


@pytest.fixture
def log() -> MutationLog:
    """A fresh recording collaborator."""
    return MutationLog()


@pytest.fixture
def fields() -> list[str]:
    """Field names of a small sign-up form."""
    return ["name", "email", "password"]


class SubmitSpy:
    """Submit action that records its calls and returns a fixed outcome."""

    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple] = []

    def __call__(self, values, dispatch, context):
        self.calls.append((values, dispatch, context))
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def called(self) -> bool:
        return len(self.calls) > 0


@pytest.fixture
def submit_spy():
    """Factory for SubmitSpy instances."""
    return SubmitSpy

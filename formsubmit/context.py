"""Submission context passed to the orchestrator.

The context bundles everything the orchestrator needs from the
surrounding form-binding layer: the dispatch handle, the state mutators,
the optional user callbacks, the current values and the error snapshots.
How any of that state is stored is up to the caller; the orchestrator
only invokes the callables.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, field_validator

from formsubmit.merge import normalize_errors


class SubmitFunction(Protocol):
    """A caller-supplied submit action.

    May return a value, raise, or return an awaitable that settles later.
    """

    def __call__(self, values: Any, dispatch: Any, context: "SubmissionContext") -> Any: ...


class AsyncValidator(Protocol):
    """Nullary validator returning an awaitable of errors, or None to skip."""

    def __call__(self) -> Awaitable[Any] | None: ...


class SubmissionContext(BaseModel):
    """Callbacks, mutators and current data for one form.

    Mutators are fire-and-forget: their return values are ignored.
    ``touch`` and ``set_submit_failed`` receive one ordered sequence of
    field names. ``stop_submit`` receives the classified error, or no
    argument when a deferred submission succeeds. Error snapshot keys are
    usually field names but are not restricted to strings.
    """

    dispatch: Any = None
    touch: Callable[[Sequence[str]], Any]
    start_submit: Callable[[], Any]
    stop_submit: Callable[..., Any]
    set_submit_failed: Callable[[Sequence[str]], Any]
    set_submit_succeeded: Callable[[], Any]
    on_submit_fail: Callable[..., Any] | None = None
    on_submit_success: Callable[..., Any] | None = None
    values: Any = None
    persistent_submit_errors: bool = False
    sync_errors: dict[Any, Any] = {}
    async_errors: dict[Any, Any] = {}

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("sync_errors", "async_errors", mode="before")
    @classmethod
    def materialize_errors(cls, value: Any) -> dict[Any, Any]:
        """Normalize error snapshots into plain dicts."""
        return normalize_errors(value)

"""Submission traces.

Records every mutator and callback invocation made during a submission
attempt, and replays declarative scenarios through the orchestrator.
Used by the ``formsubmit trace`` command and by the test suite.
"""

import asyncio
import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from formsubmit.config import SubmitSettings
from formsubmit.context import SubmissionContext
from formsubmit.errors import AsyncValidationError, SubmissionError, SubmissionFailureError
from formsubmit.orchestrator import SubmissionOrchestrator, is_deferred


@dataclass
class RecordedCall:
    """One mutator or callback invocation.

    Callback entries omit the trailing context argument.
    """

    name: str
    args: tuple[Any, ...] = ()


@dataclass
class MutationLog:
    """Recording collaborator standing in for a form state container."""

    calls: list[RecordedCall] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        """Names of recorded calls, in invocation order."""
        return [call.name for call in self.calls]

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call.name == name)

    def find(self, name: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.name == name]

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append(RecordedCall(name=name, args=args))

    def touch(self, fields: Sequence[str]) -> None:
        self._record("touch", list(fields))

    def start_submit(self) -> None:
        self._record("start_submit")

    def stop_submit(self, *error: Any) -> None:
        self._record("stop_submit", *error)

    def set_submit_failed(self, fields: Sequence[str]) -> None:
        self._record("set_submit_failed", list(fields))

    def set_submit_succeeded(self) -> None:
        self._record("set_submit_succeeded")

    def on_submit_fail(self, error: Any, dispatch: Any, raw_error: Any, context: Any) -> None:
        self._record("on_submit_fail", error, dispatch, raw_error)

    def on_submit_success(self, result: Any, dispatch: Any, context: Any) -> None:
        self._record("on_submit_success", result, dispatch)

    def context(
        self,
        *,
        with_fail_callback: bool = False,
        with_success_callback: bool = False,
        **data: Any,
    ) -> SubmissionContext:
        """Build a SubmissionContext whose mutators record into this log.

        Args:
            with_fail_callback: Install a recording ``on_submit_fail``.
            with_success_callback: Install a recording ``on_submit_success``.
            **data: Remaining SubmissionContext fields (values, dispatch,
                sync_errors, ...). Explicit callables override the recorders.
        """
        mutators: dict[str, Any] = {
            "touch": self.touch,
            "start_submit": self.start_submit,
            "stop_submit": self.stop_submit,
            "set_submit_failed": self.set_submit_failed,
            "set_submit_succeeded": self.set_submit_succeeded,
        }
        if with_fail_callback:
            mutators["on_submit_fail"] = self.on_submit_fail
        if with_success_callback:
            mutators["on_submit_success"] = self.on_submit_success
        mutators.update(data)
        return SubmissionContext(**mutators)


class ScenarioError(BaseModel):
    """Error raised by a scenario's submit action."""

    kind: Literal["field", "failure", "other"]
    errors: dict[str, Any] = Field(default_factory=dict)
    message: str = ""

    def build(self) -> Exception:
        if self.kind == "field":
            return SubmissionError(self.errors)
        if self.kind == "failure":
            return SubmissionFailureError(self.message)
        return RuntimeError(self.message or "unrecognized submit error")


class ScenarioSubmit(BaseModel):
    """Behavior of a scenario's submit action.

    Modes:
        return: return ``result`` immediately.
        raise: raise ``error`` immediately.
        resolve: return an awaitable resolving to ``result``.
        reject: return an awaitable raising ``error``.
    """

    mode: Literal["return", "raise", "resolve", "reject"] = "return"
    result: Any = None
    error: ScenarioError | None = None

    @model_validator(mode="after")
    def require_error_for_failures(self) -> "ScenarioSubmit":
        if self.mode in ("raise", "reject") and self.error is None:
            raise ValueError(f"submit mode '{self.mode}' requires an 'error'")
        return self


class SubmitScenario(BaseModel):
    """A declarative submission attempt.

    ``async_validation`` is None when no async validator is installed;
    otherwise it is the errors mapping the validator resolves with (an
    empty mapping means validation passes).
    """

    fields: list[str]
    values: dict[str, Any] = Field(default_factory=dict)
    valid: bool = True
    persistent_submit_errors: bool | None = None
    sync_errors: dict[str, Any] = Field(default_factory=dict)
    async_errors: dict[str, Any] = Field(default_factory=dict)
    async_validation: dict[str, Any] | None = None
    submit: ScenarioSubmit = Field(default_factory=ScenarioSubmit)
    on_submit_fail: bool = False
    on_submit_success: bool = False

    model_config = {"extra": "forbid"}


class ScenarioOutcome(BaseModel):
    """Result of replaying a scenario."""

    status: Literal["succeeded", "failed", "raised"]
    deferred: bool
    value: Any = None
    error: str | None = None
    calls: list[RecordedCall] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation. Non-JSON values are rendered with repr()."""
        return json.loads(
            json.dumps(
                {
                    "status": self.status,
                    "deferred": self.deferred,
                    "value": self.value,
                    "error": self.error,
                    "calls": [{"name": c.name, "args": list(c.args)} for c in self.calls],
                },
                default=repr,
            )
        )


def load_scenario(path: Path) -> SubmitScenario:
    """Load a scenario from a JSON or YAML file."""
    with open(path) as f:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    return SubmitScenario.model_validate(data)


def _make_submit(behavior: ScenarioSubmit):
    async def deferred() -> Any:
        await asyncio.sleep(0)
        if behavior.mode == "reject":
            raise behavior.error.build()
        return behavior.result

    def submit(values: Any, dispatch: Any, context: SubmissionContext) -> Any:
        if behavior.mode == "raise":
            raise behavior.error.build()
        if behavior.mode in ("resolve", "reject"):
            return deferred()
        return behavior.result

    return submit


def _make_async_validate(errors: dict[str, Any] | None):
    if errors is None:
        return None

    async def validate() -> dict[str, Any]:
        await asyncio.sleep(0)
        return errors

    return validate


def run_scenario(scenario: SubmitScenario, settings: SubmitSettings | None = None) -> ScenarioOutcome:
    """Replay a scenario through the orchestrator and record the trace.

    Args:
        scenario: The scenario to run.
        settings: Supplies the default for ``persistent_submit_errors``
            when the scenario does not set it.

    Returns:
        ScenarioOutcome with status, settled value and recorded calls.
    """
    settings = settings or SubmitSettings()
    persistent = scenario.persistent_submit_errors
    if persistent is None:
        persistent = settings.persistent_submit_errors

    log = MutationLog()
    context = log.context(
        with_fail_callback=scenario.on_submit_fail,
        with_success_callback=scenario.on_submit_success,
        values=scenario.values,
        persistent_submit_errors=persistent,
        sync_errors=scenario.sync_errors,
        async_errors=scenario.async_errors,
    )
    orchestrator = SubmissionOrchestrator(context, scenario.fields)

    deferred = False
    try:
        value = orchestrator.handle_submit(
            _make_submit(scenario.submit),
            scenario.valid,
            _make_async_validate(scenario.async_validation),
        )
        if is_deferred(value):
            deferred = True
            value = asyncio.run(value)
    except AsyncValidationError as exc:
        return ScenarioOutcome(
            status="failed", deferred=deferred, value=exc.errors, error=str(exc), calls=log.calls
        )
    except Exception as exc:
        return ScenarioOutcome(status="raised", deferred=deferred, error=repr(exc), calls=log.calls)

    status = "succeeded" if "set_submit_succeeded" in log.names else "failed"
    return ScenarioOutcome(status=status, deferred=deferred, value=value, calls=log.calls)

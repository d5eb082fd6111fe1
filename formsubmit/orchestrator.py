"""Submission orchestration.

Drives one submission attempt through touch-marking, validity gating,
optional async validation, execution of the submit action and
success/failure reporting.

An attempt settles in one of two ways:

- Immediately: the return value is the submit result on success, or the
  normalized error (field error dict, failure message, or merged
  validation errors) on failure.
- Deferred: when async validation runs, or the submit action returns an
  awaitable, the return value is a coroutine. Awaiting it yields the
  result or normalized error, or raises ``AsyncValidationError`` when
  async validation reports errors.

Unrecognized errors raised by the submit action are re-raised after the
failure mutators run, unless an ``on_submit_fail`` callback observes them.
"""

import inspect
import logging
from collections.abc import Awaitable, Sequence
from typing import Any

from formsubmit.context import AsyncValidator, SubmissionContext, SubmitFunction
from formsubmit.errors import AsyncValidationError, classify_error
from formsubmit.merge import merge_errors

logger = logging.getLogger(__name__)


def is_deferred(value: Any) -> bool:
    """Return True if value settles later and must be awaited."""
    return inspect.isawaitable(value)


class SubmissionOrchestrator:
    """Runs submission attempts for one form context.

    The orchestrator holds no state between attempts. Calling
    ``handle_submit`` again before a deferred attempt settles is not
    guarded against.
    """

    def __init__(self, context: SubmissionContext, fields: Sequence[str]) -> None:
        """Initialize the orchestrator.

        Args:
            context: Callbacks, mutators and current data for the form.
            fields: Ordered field names to mark touched and failed.
        """
        self.context = context
        self.fields = list(fields)

    def handle_submit(
        self,
        submit: SubmitFunction,
        valid: bool,
        async_validate: AsyncValidator | None = None,
    ) -> Any:
        """Run one submission attempt.

        Args:
            submit: Submit action, called as ``submit(values, dispatch, context)``.
            valid: Whether the form currently passes sync validation.
            async_validate: Optional validator returning an awaitable of
                errors (falsy when valid) or None to skip.

        Returns:
            The immediate outcome, or a coroutine settling to it.
        """
        ctx = self.context
        ctx.touch(self.fields)
        logger.debug("touched fields=%s", self.fields)

        if not (valid or ctx.persistent_submit_errors):
            return self._fail_gating()

        pending = async_validate() if async_validate is not None else None
        if pending is not None and is_deferred(pending):
            logger.debug("validating asynchronously")
            return self._validate_then_submit(pending, submit)
        return self._do_submit(submit)

    def _fail_gating(self) -> dict[str, Any]:
        ctx = self.context
        ctx.set_submit_failed(self.fields)
        errors = merge_errors(ctx.async_errors, ctx.sync_errors)
        logger.debug("gated: form invalid, errors=%s", list(errors))
        if ctx.on_submit_fail is not None:
            ctx.on_submit_fail(errors, ctx.dispatch, None, ctx)
        return errors

    async def _validate_then_submit(self, pending: Awaitable[Any], submit: SubmitFunction) -> Any:
        ctx = self.context
        try:
            async_errors = await pending
            if async_errors:
                raise AsyncValidationError(async_errors)
            outcome = self._do_submit(submit)
            if is_deferred(outcome):
                outcome = await outcome
            return outcome
        except Exception as exc:
            payload = exc.errors if isinstance(exc, AsyncValidationError) else exc
            logger.debug("failed after async validation started: %r", exc)
            ctx.set_submit_failed(self.fields)
            if ctx.on_submit_fail is not None:
                ctx.on_submit_fail(payload, ctx.dispatch, None, ctx)
            raise

    def _do_submit(self, submit: SubmitFunction) -> Any:
        ctx = self.context
        try:
            result = submit(ctx.values, ctx.dispatch, ctx)
        except Exception as exc:
            return self._handle_error(exc)

        if is_deferred(result):
            ctx.start_submit()
            logger.debug("submitting")
            return self._await_submit(result)
        return self._handle_success(result)

    async def _await_submit(self, pending: Awaitable[Any]) -> Any:
        try:
            result = await pending
        except Exception as exc:
            return self._handle_error(exc)
        self.context.stop_submit()
        return self._handle_success(result)

    def _handle_success(self, result: Any) -> Any:
        ctx = self.context
        ctx.set_submit_succeeded()
        logger.debug("succeeded")
        if ctx.on_submit_success is not None:
            ctx.on_submit_success(result, ctx.dispatch, ctx)
        return result

    def _handle_error(self, submit_error: Exception) -> Any:
        """Normalize a submit error and report the failure.

        Field errors and failure messages are always handled and returned.
        An unrecognized error is re-raised after the failure mutators run
        unless an ``on_submit_fail`` callback is present to observe it.
        """
        ctx = self.context
        classified = classify_error(submit_error)
        error = classified.error

        ctx.stop_submit(error)
        ctx.set_submit_failed(self.fields)
        logger.debug("failed: kind=%s", classified.kind.value)
        if ctx.on_submit_fail is not None:
            ctx.on_submit_fail(error, ctx.dispatch, submit_error, ctx)
        elif not classified.recognized:
            logger.warning("Unhandled submit error re-raised: %r", submit_error)
            raise submit_error
        return error


def handle_submit(
    submit: SubmitFunction,
    context: SubmissionContext,
    valid: bool,
    async_validate: AsyncValidator | None,
    fields: Sequence[str],
) -> Any:
    """Run one submission attempt. See ``SubmissionOrchestrator.handle_submit``."""
    return SubmissionOrchestrator(context, fields).handle_submit(submit, valid, async_validate)

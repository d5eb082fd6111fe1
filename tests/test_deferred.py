"""Tests for deferred submission attempts.

Deferred outcomes are coroutines; they are driven with asyncio.run.
"""

import asyncio

import pytest

from formsubmit import (
    AsyncValidationError,
    SubmissionError,
    SubmissionFailureError,
    handle_submit,
    is_deferred,
)
from formsubmit.trace import MutationLog


def resolving(value):
    """Submit action returning a coroutine that resolves to value."""

    def submit(values, dispatch, context):
        async def settle():
            await asyncio.sleep(0)
            return value

        return settle()

    return submit


def rejecting(error: Exception):
    """Submit action returning a coroutine that raises error."""

    def submit(values, dispatch, context):
        async def settle():
            await asyncio.sleep(0)
            raise error

        return settle()

    return submit


def validator(errors):
    """Async validator resolving to errors."""

    async def validate():
        await asyncio.sleep(0)
        return errors

    return validate


class TestIsDeferred:
    """Tests for is_deferred()."""

    def test_coroutine(self) -> None:
        """Test that coroutines are deferred."""

        async def noop():
            return None

        coro = noop()
        assert is_deferred(coro)
        coro.close()

    def test_future(self) -> None:
        """Test that futures are deferred."""
        loop = asyncio.new_event_loop()
        try:
            assert is_deferred(loop.create_future())
        finally:
            loop.close()

    def test_custom_awaitable(self) -> None:
        """Test that objects exposing __await__ are deferred."""

        class Pending:
            def __await__(self):
                yield
                return 1

        assert is_deferred(Pending())

    @pytest.mark.parametrize("value", [None, 42, {"a": 1}, [1], "text"])
    def test_plain_values(self, value) -> None:
        """Test that plain values are immediate."""
        assert not is_deferred(value)


class TestDeferredSubmit:
    """Tests for submit actions returning awaitables."""

    def test_start_submit_before_suspending(self, log: MutationLog, fields) -> None:
        """Test that start_submit runs before the awaitable is returned."""
        outcome = handle_submit(resolving("ok"), log.context(), True, None, fields)

        assert is_deferred(outcome)
        assert log.names == ["touch", "start_submit"]
        asyncio.run(outcome)

    def test_resolved(self, log: MutationLog, fields) -> None:
        """Test the success path of a deferred submission."""
        context = log.context(with_success_callback=True)

        result = asyncio.run(handle_submit(resolving({"id": 1}), context, True, None, fields))

        assert result == {"id": 1}
        assert log.names == [
            "touch",
            "start_submit",
            "stop_submit",
            "set_submit_succeeded",
            "on_submit_success",
        ]
        assert log.find("stop_submit")[0].args == ()

    def test_rejected_with_submission_error(self, log: MutationLog, fields) -> None:
        """Test that field errors settle as a value, not a rejection."""
        outcome = handle_submit(
            rejecting(SubmissionError({"email": "duplicate"})), log.context(), True, None, fields
        )

        result = asyncio.run(outcome)

        assert result == {"email": "duplicate"}
        assert log.names == ["touch", "start_submit", "stop_submit", "set_submit_failed"]
        assert log.find("stop_submit")[0].args == ({"email": "duplicate"},)

    def test_rejected_with_failure_message(self, log: MutationLog, fields) -> None:
        """Test that failure messages settle as a value."""
        context = log.context(with_fail_callback=True)
        raw = SubmissionFailureError("Payment declined")

        result = asyncio.run(handle_submit(rejecting(raw), context, True, None, fields))

        assert result == "Payment declined"
        assert log.find("on_submit_fail")[0].args == ("Payment declined", None, raw)

    def test_rejected_with_unrecognized_error(self, log: MutationLog, fields) -> None:
        """Test that unrecognized rejections propagate after the mutators run."""
        raw = ConnectionError("reset")
        outcome = handle_submit(rejecting(raw), log.context(), True, None, fields)

        with pytest.raises(ConnectionError) as excinfo:
            asyncio.run(outcome)

        assert excinfo.value is raw
        assert log.names == ["touch", "start_submit", "stop_submit", "set_submit_failed"]
        assert log.find("stop_submit")[0].args == (None,)

    def test_rejected_with_unrecognized_error_and_callback(self, log: MutationLog, fields) -> None:
        """Test that an observing callback turns the rejection into a None value."""
        raw = ConnectionError("reset")
        context = log.context(with_fail_callback=True)

        result = asyncio.run(handle_submit(rejecting(raw), context, True, None, fields))

        assert result is None
        assert log.find("on_submit_fail")[0].args == (None, None, raw)

    def test_future_result(self, log: MutationLog, fields) -> None:
        """Test a submit action returning an asyncio future."""

        async def main():
            loop = asyncio.get_running_loop()
            future = loop.create_future()
            outcome = handle_submit(lambda v, d, c: future, log.context(), True, None, fields)
            loop.call_soon(future.set_result, "done")
            return await outcome

        assert asyncio.run(main()) == "done"
        assert log.count("set_submit_succeeded") == 1


class TestAsyncValidation:
    """Tests for the async validation step."""

    def test_validation_errors_reject(self, log: MutationLog, fields, submit_spy) -> None:
        """Test that async errors reject the outcome and skip submit."""
        submit = submit_spy(result=1)
        outcome = handle_submit(
            submit, log.context(), True, validator({"password": "too short"}), fields
        )

        assert is_deferred(outcome)
        with pytest.raises(AsyncValidationError) as excinfo:
            asyncio.run(outcome)

        assert excinfo.value.errors == {"password": "too short"}
        assert not submit.called
        assert log.names == ["touch", "set_submit_failed"]

    @pytest.mark.parametrize("payload", ["username taken", ["username taken"]])
    def test_non_mapping_payload_rejects_unchanged(
        self, log: MutationLog, fields, submit_spy, payload
    ) -> None:
        """Test that a truthy non-mapping payload is carried as-is."""
        context = log.context(with_fail_callback=True)
        submit = submit_spy(result=1)
        outcome = handle_submit(submit, context, True, validator(payload), fields)

        with pytest.raises(AsyncValidationError) as excinfo:
            asyncio.run(outcome)

        assert excinfo.value.errors == payload
        assert not submit.called
        assert log.names == ["touch", "set_submit_failed", "on_submit_fail"]
        assert log.find("on_submit_fail")[0].args == (payload, None, None)

    def test_validation_errors_call_on_submit_fail(self, log: MutationLog, fields, submit_spy) -> None:
        """Test that on_submit_fail receives the async errors and no raw error."""
        context = log.context(with_fail_callback=True, dispatch="store")
        outcome = handle_submit(submit_spy(), context, True, validator({"username": "taken"}), fields)

        with pytest.raises(AsyncValidationError):
            asyncio.run(outcome)

        assert log.find("on_submit_fail")[0].args == ({"username": "taken"}, "store", None)

    @pytest.mark.parametrize("passing", [None, {}, False])
    def test_falsy_result_proceeds_to_submit(self, log: MutationLog, fields, submit_spy, passing) -> None:
        """Test that falsy validator results let the submission run."""
        submit = submit_spy(result="saved")
        outcome = handle_submit(submit, log.context(), True, validator(passing), fields)

        assert log.names == ["touch"]
        assert asyncio.run(outcome) == "saved"
        assert submit.called
        assert log.names == ["touch", "set_submit_succeeded"]

    def test_validation_then_deferred_submit(self, log: MutationLog, fields) -> None:
        """Test async validation followed by a deferred submission."""
        outcome = handle_submit(resolving(5), log.context(), True, validator(None), fields)

        assert asyncio.run(outcome) == 5
        assert log.names == ["touch", "start_submit", "stop_submit", "set_submit_succeeded"]

    def test_validation_then_submission_error(self, log: MutationLog, fields, submit_spy) -> None:
        """Test that field errors after validation settle as a value."""
        submit = submit_spy(error=SubmissionError({"email": "duplicate"}))
        outcome = handle_submit(submit, log.context(), True, validator(None), fields)

        assert asyncio.run(outcome) == {"email": "duplicate"}
        assert log.names == ["touch", "stop_submit", "set_submit_failed"]

    def test_validation_then_unrecognized_error(self, log: MutationLog, fields) -> None:
        """Test that unrecognized errors after validation also run the validation failure branch."""
        raw = RuntimeError("boom")
        outcome = handle_submit(rejecting(raw), log.context(), True, validator(None), fields)

        with pytest.raises(RuntimeError) as excinfo:
            asyncio.run(outcome)

        assert excinfo.value is raw
        assert log.names == [
            "touch",
            "start_submit",
            "stop_submit",
            "set_submit_failed",
            "set_submit_failed",
        ]

    def test_validator_raising(self, log: MutationLog, fields, submit_spy) -> None:
        """Test that a failing validator is reported and propagated."""
        raw = TimeoutError("validator timed out")

        async def validate():
            raise raw

        context = log.context(with_fail_callback=True)
        submit = submit_spy()
        outcome = handle_submit(submit, context, True, validate, fields)

        with pytest.raises(TimeoutError):
            asyncio.run(outcome)

        assert not submit.called
        assert log.names == ["touch", "set_submit_failed", "on_submit_fail"]
        assert log.find("on_submit_fail")[0].args == (raw, None, None)

    def test_persistent_submit_errors_runs_validation(self, log: MutationLog, fields, submit_spy) -> None:
        """Test that async validation runs when the gate is bypassed."""
        context = log.context(persistent_submit_errors=True)
        outcome = handle_submit(submit_spy(), context, False, validator({"a": "b"}), fields)

        with pytest.raises(AsyncValidationError):
            asyncio.run(outcome)

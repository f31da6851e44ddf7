"""Tests for the hook pipeline, validation and timestamp hooks."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from plume.errors import InvalidInput
from plume.hooks import (
    Failure,
    HookContext,
    HookTable,
    Ok,
    SetTimestamp,
    SetTimestamps,
    ValidateText,
    run_hooks,
)

from test_utils import TickingClock


def make_context(data=None, method="create"):
    return HookContext(path="messages", method=method, data=data)


class TestValidateText:
    """Test cases for the validation hook."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [{}, {"text": None}])
    async def test_missing_text_fails(self, data):
        outcome = await ValidateText()(make_context(data))
        assert isinstance(outcome, Failure)
        assert isinstance(outcome.error, InvalidInput)
        assert outcome.error.error.message == "Message text must exist"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t", 42, ["hi"]])
    async def test_blank_or_non_string_text_fails(self, text):
        outcome = await ValidateText()(make_context({"text": text}))
        assert isinstance(outcome, Failure)
        assert outcome.error.error.message == "Message text is invalid"
        assert outcome.error.error.status_code == 400

    @pytest.mark.asyncio
    async def test_extraneous_fields_are_discarded(self):
        outcome = await ValidateText()(make_context({"text": "hi", "evil": True, "id": 99}))
        assert isinstance(outcome, Ok)
        assert outcome.context.data == {"text": "hi"}

    @pytest.mark.asyncio
    async def test_forwarded_field_kept_when_present(self):
        hook = ValidateText(forward={"counter": int})
        outcome = await hook(make_context({"text": "hi", "counter": 7, "evil": 1}))
        assert outcome.context.data == {"text": "hi", "counter": 7}

    @pytest.mark.asyncio
    async def test_forwarded_field_omitted_when_absent(self):
        hook = ValidateText(forward={"counter": int})
        outcome = await hook(make_context({"text": "hi"}))
        assert outcome.context.data == {"text": "hi"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("counter", ["7", True, 1.5])
    async def test_forwarded_field_with_wrong_type_fails(self, counter):
        hook = ValidateText(forward={"counter": int})
        outcome = await hook(make_context({"text": "hi", "counter": counter}))
        assert isinstance(outcome, Failure)
        assert outcome.error.error.details == {"field": "counter", "expected": "int"}

    @pytest.mark.asyncio
    async def test_non_dict_data_fails(self):
        outcome = await ValidateText()(make_context("just a string"))
        assert isinstance(outcome, Failure)


class TestTimestamps:
    """Test cases for the timestamp hooks."""

    @pytest.mark.asyncio
    async def test_single_field(self):
        clock = TickingClock()
        outcome = await SetTimestamp("patchedAt", clock=clock)(make_context({"text": "a"}))
        assert outcome.context.data == {"text": "a", "patchedAt": datetime(2024, 1, 1, tzinfo=timezone.utc)}

    @pytest.mark.asyncio
    async def test_many_fields_share_one_sample(self):
        clock = TickingClock()
        hook = SetTimestamps(["createdAt", "patchedAt", "updatedAt"], clock=clock)
        outcome = await hook(make_context({"text": "a"}))
        data = outcome.context.data
        assert data["createdAt"] == data["patchedAt"] == data["updatedAt"]
        assert clock.call_count == 1

    @pytest.mark.asyncio
    async def test_default_clock_is_timezone_aware(self):
        outcome = await SetTimestamp("createdAt")(make_context({}))
        assert outcome.context.data["createdAt"].tzinfo is not None

    @pytest.mark.asyncio
    async def test_missing_data_becomes_dict(self):
        outcome = await SetTimestamp("updatedAt")(make_context(None))
        assert isinstance(outcome, Ok)
        assert "updatedAt" in outcome.context.data

    def test_empty_field_list_rejected(self):
        with pytest.raises(ValueError):
            SetTimestamps([])


class TestHookTable:
    """Test cases for hook table construction and ordering."""

    def test_single_hook_is_wrapped(self):
        hook = SetTimestamp("patchedAt")
        table = HookTable(before={"patch": hook})
        assert table.chain("before", "patch") == (hook,)

    def test_method_hooks_run_before_all_hooks(self):
        first, second, shared = SetTimestamp("a"), SetTimestamp("b"), SetTimestamp("c")
        table = HookTable(before={"all": [shared], "create": [first, second]})
        assert table.chain("before", "create") == (first, second, shared)
        assert table.chain("before", "find") == (shared,)
        assert table.chain("after", "create") == ()

    def test_unknown_method_rejected(self):
        with pytest.raises(ValueError, match="Unknown service method"):
            HookTable(before={"destroy": []})

    def test_table_is_immutable(self):
        table = HookTable(before={"create": []})
        with pytest.raises(TypeError):
            table.before["patch"] = ()
        with pytest.raises(AttributeError):
            table.before = {}


class TestRunHooks:
    """Test cases for running a chain of hooks."""

    @pytest.mark.asyncio
    async def test_failure_short_circuits(self):
        calls = []

        async def record(context):
            calls.append(context.method)
            return Ok(context)

        chain = [record, ValidateText(), record]
        outcome = await run_hooks(chain, make_context({}))
        assert isinstance(outcome, Failure)
        assert calls == ["create"]

    @pytest.mark.asyncio
    async def test_replaced_data_flows_to_next_hook(self):
        seen = []

        async def replace(context):
            context.data = {"text": "replaced"}
            return Ok(context)

        async def observe(context):
            seen.append(dict(context.data))
            return Ok(context)

        outcome = await run_hooks([replace, observe], make_context({"text": "orig"}))
        assert isinstance(outcome, Ok)
        assert seen == [{"text": "replaced"}]

    @pytest.mark.asyncio
    async def test_empty_chain_returns_context(self):
        context = make_context({"text": "a"})
        outcome = await run_hooks((), context)
        assert outcome == Ok(context)

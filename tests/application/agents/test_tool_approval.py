"""Unit tests for pausing a tool loop on tool approval.

Tests cover:
- Completed and blocked outcomes of run_text_until_blocked
- Per-tool checks taking precedence over the global check
- Resuming from a blocked state
- Runs that cannot pause (run_text, stream_text)
- The coordinator's approval evaluation
"""

from collections.abc import Sequence
from typing import Any

import pytest

from tests.fixtures.factories import ModelResultFactory, ScriptedLanguageModel, ToolCallFactory, ToolFactory
from tests.fixtures.mixins import AsyncTestMixin, ConversationAssertionsMixin, StreamAssertionsMixin
from toolloop.application.agents import AgentInput, ToolExecutionCoordinator, ToolLoopAgent
from toolloop.domain.exceptions import ToolApprovalRequiredError
from toolloop.domain.models import Message, MessageRole, ToolCall, ToolLoopBlocked, ToolLoopCompleted


def always(call: ToolCall, messages: Sequence[Message], iteration: int) -> bool:
    return True


def never(call: ToolCall, messages: Sequence[Message], iteration: int) -> bool:
    return False


class TestRunUntilBlocked(ConversationAssertionsMixin):
    """Test the completed and blocked outcomes."""

    @pytest.mark.asyncio
    async def test_completed_without_checks(self, agent: ToolLoopAgent) -> None:
        """Test that a run without approval checks completes with its working messages."""
        lookup, attempts = ToolFactory.flaky("lookup", failures=0, result="42")
        model = ScriptedLanguageModel([ModelResultFactory.tool_calls(ToolCallFactory.create("lookup", call_id="c1")), ModelResultFactory.text("It is 42.")])
        input = AgentInput.create(model, [Message.user("Look it up")], tools=[lookup])

        outcome = await agent.run_text_until_blocked(input)

        assert isinstance(outcome, ToolLoopCompleted)
        assert outcome.result.text == "It is 42."
        assert [step.iteration for step in outcome.steps] == [1, 2]
        assert attempts == [1]
        assert self.roles(list(outcome.messages)) == [MessageRole.USER, MessageRole.ASSISTANT, MessageRole.USER, MessageRole.ASSISTANT]
        assert outcome.messages[-1].text == "It is 42."

    @pytest.mark.asyncio
    async def test_blocked_before_any_tool_runs(self, agent: ToolLoopAgent) -> None:
        """Test that a flagged call pauses the run and no tool of that step executes."""
        delete_file, delete_attempts = ToolFactory.flaky("delete_file", failures=0)
        list_files, list_attempts = ToolFactory.flaky("list_files", failures=0)
        calls = [ToolCallFactory.create("list_files", call_id="c1"), ToolCallFactory.create("delete_file", call_id="c2")]
        model = ScriptedLanguageModel([ModelResultFactory.tool_calls(*calls, text="Cleaning up")])
        input = AgentInput.create(
            model,
            [Message.user("Clean the folder")],
            tools=[list_files, delete_file],
            tool_approval_checks={"delete_file": always},
        )

        outcome = await agent.run_text_until_blocked(input)

        assert isinstance(outcome, ToolLoopBlocked)
        assert outcome.iteration == 1
        assert [call.id for call in outcome.tool_calls] == ["c1", "c2"]
        assert [call.id for call in outcome.pending_approval] == ["c2"]
        assert delete_attempts == [] and list_attempts == []
        assert len(outcome.steps) == 1 and outcome.steps[0].tool_executions == ()
        assert self.roles(list(outcome.messages)) == [MessageRole.USER, MessageRole.ASSISTANT]
        assert [part.tool_call_id for part in outcome.messages[-1].tool_calls] == ["c1", "c2"]
        assert model.call_count == 1

    @pytest.mark.asyncio
    async def test_per_tool_check_overrides_global(self, agent: ToolLoopAgent) -> None:
        """Test that a per-tool check wins over needs_approval."""
        calls = [ToolCallFactory.create("read", call_id="r1"), ToolCallFactory.create("write", call_id="w1")]
        model = ScriptedLanguageModel([ModelResultFactory.tool_calls(*calls)])
        input = AgentInput.create(
            model,
            [Message.user("Sync")],
            tools=[ToolFactory.echo("read"), ToolFactory.echo("write")],
            tool_approval_checks={"read": never},
            needs_approval=always,
        )

        outcome = await agent.run_text_until_blocked(input)

        assert isinstance(outcome, ToolLoopBlocked)
        assert [call.id for call in outcome.pending_approval] == ["w1"]

    @pytest.mark.asyncio
    async def test_async_check_receives_context(self, agent: ToolLoopAgent) -> None:
        """Test that async checks are awaited and see the conversation and iteration."""
        seen: list[tuple[str, int, int]] = []

        async def check(call: ToolCall, messages: Sequence[Message], iteration: int) -> bool:
            seen.append((call.id, len(messages), iteration))
            return iteration > 1

        model = ScriptedLanguageModel(
            [
                ModelResultFactory.tool_calls(ToolCallFactory.create("echo", call_id="a1")),
                ModelResultFactory.tool_calls(ToolCallFactory.create("echo", call_id="a2")),
            ]
        )
        input = AgentInput.create(model, [Message.user("Twice")], tools=[ToolFactory.echo("echo")], needs_approval=check)

        outcome = await agent.run_text_until_blocked(input)

        assert isinstance(outcome, ToolLoopBlocked)
        assert outcome.iteration == 2
        assert seen == [("a1", 1, 1), ("a2", 3, 2)]
        assert len(outcome.steps[0].tool_executions) == 1

    @pytest.mark.asyncio
    async def test_resume_from_blocked_messages(self, agent: ToolLoopAgent) -> None:
        """Test that a caller can answer the pending calls and start a new run."""
        model = ScriptedLanguageModel([ModelResultFactory.tool_calls(ToolCallFactory.create("pay", call_id="p1")), ModelResultFactory.text("Paid.")])
        pay = ToolFactory.constant("pay", "receipt-1")
        blocked = await agent.run_text_until_blocked(AgentInput.create(model, [Message.user("Pay the bill")], tools=[pay], needs_approval=always))
        assert isinstance(blocked, ToolLoopBlocked)

        approved = [*blocked.messages, Message.tool_result("p1", "pay", "receipt-1")]
        outcome = await agent.run_text_until_blocked(AgentInput.create(model, approved, tools=[pay]))

        assert isinstance(outcome, ToolLoopCompleted)
        assert outcome.result.text == "Paid."
        assert self.tool_result_ids(model.calls[-1]) == ["p1"]

    def test_blocked_to_dict(self) -> None:
        """Test the serialized form of a blocked state."""
        call = ToolCallFactory.create("pay", call_id="p1")
        blocked = ToolLoopBlocked(iteration=1, model_result=ModelResultFactory.tool_calls(call), tool_calls=(call,), pending_approval=(call,))

        assert blocked.to_dict()["pending_approval"] == ["p1"]


class TestRunsThatCannotPause(AsyncTestMixin, StreamAssertionsMixin):
    """Test runs that raise instead of pausing."""

    @pytest.mark.asyncio
    async def test_run_text_raises_with_blocked_state(self, agent: ToolLoopAgent) -> None:
        """Test that run_text surfaces the paused state in the error."""
        tool, attempts = ToolFactory.flaky("transfer", failures=0)
        model = ScriptedLanguageModel([ModelResultFactory.tool_calls(ToolCallFactory.create("transfer", call_id="t1"))])

        with pytest.raises(ToolApprovalRequiredError) as exc_info:
            await agent.run_text(AgentInput.create(model, [Message.user("Send money")], tools=[tool], needs_approval=always))

        assert exc_info.value.error_code == "tool_approval_required"
        assert [call.id for call in exc_info.value.blocked.pending_approval] == ["t1"]
        assert attempts == []

    @pytest.mark.asyncio
    async def test_stream_raises_after_finish(self, agent: ToolLoopAgent) -> None:
        """Test that streaming yields the step's parts, then raises before executing tools."""
        tool, attempts = ToolFactory.flaky("transfer", failures=0)
        model = ScriptedLanguageModel([ModelResultFactory.tool_calls(ToolCallFactory.create("transfer", call_id="t1"))])
        parts: list[Any] = []

        with pytest.raises(ToolApprovalRequiredError):
            async for part in agent.stream_text(AgentInput.create(model, [Message.user("Send money")], tools=[tool], needs_approval=always)):
                parts.append(part)

        assert self.part_types(parts)[-1] == "Finish"
        assert "StepFinish" not in self.part_types(parts)
        assert attempts == []


class TestFindCallsNeedingApproval:
    """Test the coordinator's approval evaluation."""

    @pytest.mark.asyncio
    async def test_no_checks_means_no_pending_calls(self, coordinator: ToolExecutionCoordinator) -> None:
        """Test that calls without checks never need approval."""
        pending = await coordinator.find_calls_needing_approval(ToolCallFactory.create_many(3), [], 1)

        assert pending == []

    @pytest.mark.asyncio
    async def test_pending_calls_keep_call_order(self, coordinator: ToolExecutionCoordinator) -> None:
        """Test that flagged calls are returned in request order."""
        calls = ToolCallFactory.create_many(4)

        pending = await coordinator.find_calls_needing_approval(calls, [], 1, needs_approval=lambda call, messages, iteration: call.arguments()["index"] % 2 == 1)

        assert [call.id for call in pending] == ["call_2", "call_4"]

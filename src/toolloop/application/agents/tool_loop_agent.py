"""Tool-calling agent loop.

This module implements the ToolLoopAgent, which drives a language model to
a final answer by repeatedly:

1. Calling the model with the conversation so far
2. Stopping if the model requested no tools
3. Executing the requested tools (sequentially or in parallel, with retries)
4. Appending the assistant turn and one tool-result message per call
5. Repeating, up to ``max_iterations`` model calls

Key Features:
- Bounded iteration with a typed error when the bound is hit
- Per-step trace (model result plus tool execution records)
- Structured output parsing with JSON schema validation
- Streaming variant yielding reconstructed parts, tool results and step boundaries
- Cooperative cancellation at every model call and tool attempt
- Optional approval checks that pause a run before its tools execute
"""

import logging
import time
from collections.abc import AsyncIterator
from dataclasses import replace
from typing import TYPE_CHECKING, Any, NoReturn, TypeVar

from opentelemetry import trace

from toolloop.application.agents.agent_config import ToolLoopConfig
from toolloop.application.agents.base_agent import Agent, AgentInput
from toolloop.application.agents.cancellation import raise_if_cancelled
from toolloop.application.agents.structured_output import parse_structured_output
from toolloop.application.agents.tool_execution import ToolExecutionCoordinator
from toolloop.application.streaming.delta_reconstructor import reconstruct
from toolloop.domain.exceptions import IterationLimitExceededError, StreamProtocolError, ToolApprovalRequiredError
from toolloop.domain.models import (
    AgentResult,
    AgentRunWithSteps,
    AgentStreamPart,
    CallOptions,
    Finish,
    GenerateTextResult,
    Message,
    OutputSpec,
    Step,
    StepFinish,
    ToolLoopBlocked,
    ToolLoopCompleted,
    ToolLoopOutcome,
    ToolResultEmitted,
)
from toolloop.observability import agent_iteration_limit_exceeded, agent_iterations, agent_run_time, agent_runs, agent_runs_blocked, model_calls, model_token_count

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")


class ToolLoopAgent(Agent):
    """Agent that alternates model calls and tool execution until the model stops requesting tools.

    The agent holds no per-run state; one instance can serve concurrent runs.

    Example:
        >>> agent = ToolLoopAgent()
        >>> result = await agent.run_text(AgentInput.create(model, [Message.user("What's 2+2?")], tools=[calculator]))
        >>> print(result.text)
    """

    def __init__(
        self,
        coordinator: ToolExecutionCoordinator | None = None,
        default_loop_config: ToolLoopConfig | None = None,
        validate_structured_output: bool = True,
    ) -> None:
        """Initialize the agent.

        Args:
            coordinator: Tool execution coordinator (a new one if None)
            default_loop_config: Loop configuration for inputs that carry none
            validate_structured_output: Check structured results against their JSON schema
        """
        self._coordinator = coordinator or ToolExecutionCoordinator()
        self._default_loop_config = default_loop_config or ToolLoopConfig.default()
        self._validate_structured_output = validate_structured_output

    @property
    def default_loop_config(self) -> ToolLoopConfig:
        """Get the loop configuration used when an input carries none."""
        return self._default_loop_config

    async def run_text(self, input: AgentInput) -> AgentResult[Any]:
        return (await self.run_text_with_steps(input)).result

    async def run_object(self, input: AgentInput, output: OutputSpec[T]) -> AgentResult[T]:
        return (await self.run_object_with_steps(input, output)).result

    async def run_text_with_steps(self, input: AgentInput) -> AgentRunWithSteps[Any]:
        return self._require_completed(await self._run_loop(input, mode="text")).run

    async def run_object_with_steps(self, input: AgentInput, output: OutputSpec[T]) -> AgentRunWithSteps[T]:
        run = self._require_completed(await self._run_loop(input, mode="object")).run
        final = run.result.text_result
        obj = parse_structured_output(final.text, output, validate=self._validate_structured_output)
        return AgentRunWithSteps(result=AgentResult.from_object(obj, final), steps=run.steps)

    async def run_text_until_blocked(self, input: AgentInput) -> ToolLoopOutcome:
        """Run the loop, pausing instead of failing when a tool call needs approval.

        Returns:
            ``ToolLoopCompleted`` with the result, steps and working messages, or
            ``ToolLoopBlocked`` with the calls awaiting approval. A blocked run
            executed none of the tools of its last step.
        """
        return await self._run_loop(input, mode="until_blocked")

    async def stream_text(self, input: AgentInput) -> AsyncIterator[AgentStreamPart]:
        """Run the loop over the model's streaming interface.

        For every iteration this yields the reconstructed parts of the model
        stream (ending with its ``Finish``), then one ``ToolResultEmitted``
        per executed tool call in call order, then a ``StepFinish``. The
        stream ends after the ``StepFinish`` of the first step that requested
        no tools.

        Raises:
            IterationLimitExceededError: The iteration bound was reached with tools pending
            ToolApprovalRequiredError: A tool call needed approval (raised after that step's ``Finish``)
        """
        config = input.loop_config or self._default_loop_config
        options = self._resolve_call_options(input)
        messages = list(input.messages)
        steps: list[Step] = []
        start_time = time.time()
        agent_runs.add(1, {"mode": "stream"})

        # Spans stay open across yields and are never made current.
        span = tracer.start_span("tool_loop.run", attributes=self._run_attributes(input, config, "stream"))
        try:
            for iteration in range(1, config.max_iterations + 1):
                raise_if_cancelled(input.cancel_token)
                logger.debug(f"Streaming tool loop iteration {iteration}/{config.max_iterations}")
                model_calls.add(1, {"provider": input.model.provider_id, "model": input.model.model_id})

                call_span = tracer.start_span("tool_loop.model_call", context=trace.set_span_in_context(span), attributes={"agent.iteration": iteration})
                try:
                    model_result: GenerateTextResult | None = None
                    async for part in reconstruct(input.model.stream_text(messages, options=options, cancel_token=input.cancel_token)):
                        if isinstance(part, Finish):
                            model_result = part.to_result()
                        yield part
                    if model_result is None:
                        raise StreamProtocolError("Model stream ended without a Finish part")
                    call_span.set_attribute("model.tool_calls", len(model_result.tool_calls))
                finally:
                    call_span.end()
                self._record_usage(model_result)

                blocked = await self._check_approval(input, messages, steps, iteration, model_result)
                if blocked is not None:
                    raise ToolApprovalRequiredError(blocked)

                step = await self._complete_step(input, config, messages, iteration, model_result)
                steps.append(step)
                for record in step.tool_executions:
                    yield ToolResultEmitted(iteration=iteration, record=record)
                yield StepFinish(step=step)

                if step.is_terminal:
                    span.set_attribute("agent.iterations", iteration)
                    self._record_run(start_time, iteration, "stream")
                    return

            span.set_attribute("agent.iterations", config.max_iterations)
            self._raise_iteration_limit(config, steps)
        except Exception as e:
            span.record_exception(e)
            raise
        finally:
            span.end()

    async def _run_loop(self, input: AgentInput, mode: str) -> ToolLoopOutcome:
        config = input.loop_config or self._default_loop_config
        options = self._resolve_call_options(input)
        messages = list(input.messages)
        steps: list[Step] = []
        start_time = time.time()
        agent_runs.add(1, {"mode": mode})

        with tracer.start_as_current_span("tool_loop.run", attributes=self._run_attributes(input, config, mode)) as span:
            for iteration in range(1, config.max_iterations + 1):
                raise_if_cancelled(input.cancel_token)
                logger.debug(f"Tool loop iteration {iteration}/{config.max_iterations}")

                with tracer.start_as_current_span("tool_loop.model_call") as call_span:
                    call_span.set_attribute("agent.iteration", iteration)
                    model_calls.add(1, {"provider": input.model.provider_id, "model": input.model.model_id})
                    model_result = await input.model.generate_text(messages, options=options, cancel_token=input.cancel_token)
                    call_span.set_attribute("model.tool_calls", len(model_result.tool_calls))
                self._record_usage(model_result)

                blocked = await self._check_approval(input, messages, steps, iteration, model_result)
                if blocked is not None:
                    span.set_attribute("agent.blocked", True)
                    return blocked

                step = await self._complete_step(input, config, messages, iteration, model_result)
                steps.append(step)

                if step.is_terminal:
                    span.set_attribute("agent.iterations", iteration)
                    self._record_run(start_time, iteration, mode)
                    if model_result.text:
                        messages.append(Message.assistant(content=model_result.text))
                    run = AgentRunWithSteps(result=AgentResult.from_text(model_result), steps=tuple(steps))
                    return ToolLoopCompleted(run=run, messages=tuple(messages))

            span.set_attribute("agent.iterations", config.max_iterations)
            self._raise_iteration_limit(config, steps)

    async def _check_approval(
        self,
        input: AgentInput,
        messages: list[Message],
        steps: list[Step],
        iteration: int,
        model_result: GenerateTextResult,
    ) -> ToolLoopBlocked | None:
        """Pause the run when any requested call needs approval.

        On a pause the step is recorded without executions and the assistant
        turn is appended, so ``messages`` is ready for the approved results.
        """
        if not model_result.has_tool_calls or not input.requires_approval_checks:
            return None

        pending = await self._coordinator.find_calls_needing_approval(
            model_result.tool_calls,
            tuple(messages),
            iteration,
            tool_approval_checks=input.tool_approval_checks,
            needs_approval=input.needs_approval,
            cancel_token=input.cancel_token,
        )
        if not pending:
            return None

        steps.append(Step(iteration=iteration, model_result=model_result))
        messages.append(Message.assistant(content=model_result.text, tool_calls=list(model_result.tool_calls), reasoning=model_result.thinking))
        agent_runs_blocked.add(1)
        logger.info(f"Tool loop paused at iteration {iteration}: approval needed for {[c.tool_name for c in pending]}")

        return ToolLoopBlocked(
            iteration=iteration,
            model_result=model_result,
            tool_calls=model_result.tool_calls,
            pending_approval=tuple(pending),
            steps=tuple(steps),
            messages=tuple(messages),
        )

    async def _complete_step(
        self,
        input: AgentInput,
        config: ToolLoopConfig,
        messages: list[Message],
        iteration: int,
        model_result: GenerateTextResult,
    ) -> Step:
        """Execute the step's tool calls and append the resulting messages."""
        if not model_result.has_tool_calls:
            logger.debug(f"Iteration {iteration} produced a final answer")
            return Step(iteration=iteration, model_result=model_result)

        calls = model_result.tool_calls
        logger.info(f"Iteration {iteration}: model requested {len(calls)} tool call(s): {[c.tool_name for c in calls]}")
        records = await self._coordinator.execute_all(calls, input.tools, config, cancel_token=input.cancel_token, iteration=iteration)

        messages.append(Message.assistant(content=model_result.text, tool_calls=list(calls), reasoning=model_result.thinking))
        messages.extend(record.to_message() for record in records)

        return Step(iteration=iteration, model_result=model_result, tool_executions=tuple(records))

    @staticmethod
    def _require_completed(outcome: ToolLoopOutcome) -> ToolLoopCompleted[Any]:
        match outcome:
            case ToolLoopBlocked():
                raise ToolApprovalRequiredError(outcome)
            case _:
                return outcome

    @staticmethod
    def _run_attributes(input: AgentInput, config: ToolLoopConfig, mode: str) -> dict[str, Any]:
        return {
            "agent.mode": mode,
            "agent.max_iterations": config.max_iterations,
            "agent.tool_count": len(input.tools),
            "model.provider": input.model.provider_id,
            "model.id": input.model.model_id,
        }

    @staticmethod
    def _resolve_call_options(input: AgentInput) -> CallOptions:
        """Expose the input's tools to the model unless the caller chose the tool list."""
        options = input.call_options or CallOptions()
        if not options.tools and input.tools:
            options = replace(options, tools=tuple(tool.schema for tool in input.tools.values()))
        return options

    @staticmethod
    def _record_usage(model_result: GenerateTextResult) -> None:
        if model_result.usage is not None and model_result.usage.total_tokens is not None:
            model_token_count.record(model_result.usage.total_tokens)

    @staticmethod
    def _record_run(start_time: float, iterations: int, mode: str) -> None:
        elapsed_ms = (time.time() - start_time) * 1000
        agent_run_time.record(elapsed_ms, {"mode": mode})
        agent_iterations.record(iterations, {"mode": mode})
        logger.info(f"Tool loop finished after {iterations} iteration(s) in {elapsed_ms:.2f}ms")

    @staticmethod
    def _raise_iteration_limit(config: ToolLoopConfig, steps: list[Step]) -> NoReturn:
        agent_iteration_limit_exceeded.add(1)
        logger.warning(f"Tool loop hit the iteration limit ({config.max_iterations}) with tool calls pending")
        raise IterationLimitExceededError(config.max_iterations, tuple(steps))

    @staticmethod
    def configure(builder: "ApplicationBuilderBase") -> None:
        """Configure ToolLoopAgent in the service collection.

        Reads the loop defaults from the registered ``Settings`` (or the
        module-level settings when none is registered).

        Args:
            builder: The application builder
        """
        from toolloop.application.settings import Settings

        # Get settings
        settings: Settings | None = None
        for desc in builder.services:
            if desc.service_type is Settings and desc.singleton:
                settings = desc.singleton
                break

        if settings is None:
            from toolloop.application.settings import app_settings

            settings = app_settings

        coordinator = ToolExecutionCoordinator()
        agent = ToolLoopAgent(
            coordinator=coordinator,
            default_loop_config=settings.to_loop_config(),
            validate_structured_output=settings.structured_output_validate_schema,
        )

        # Register as both concrete type and abstract interface
        builder.services.add_singleton(ToolExecutionCoordinator, singleton=coordinator)
        builder.services.add_singleton(ToolLoopAgent, singleton=agent)
        builder.services.add_singleton(Agent, singleton=agent)

        logger.info(f"Configured ToolLoopAgent: max_iterations={agent.default_loop_config.max_iterations}, parallel_tools={agent.default_loop_config.run_tools_in_parallel}")

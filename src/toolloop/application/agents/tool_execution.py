"""Tool execution coordination for the agent loop.

This module provides the ToolExecutionCoordinator, which runs the tool
calls requested in one model step against the registered executable tools.

Execution policy:
- Sequential: one call at a time in request order; a call and all of its
  retries resolve before the next call starts
- Parallel: all calls of the step run concurrently
- Records are always returned in request order, one per call

Failure handling:
- Exceptions raised by a tool are retried up to ``max_tool_retries`` times
- A returned ``ToolFailure`` is final and never retried
- Malformed arguments are final and never retried
- Unknown tools become error records (or raise, see ``continue_on_error``)

Approval checks are evaluated separately, before any call of a step runs.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

from opentelemetry import trace

from toolloop.application.agents.agent_config import ToolLoopConfig
from toolloop.application.agents.cancellation import CancellationToken, raise_if_cancelled
from toolloop.domain.exceptions import OperationCancelledError, ToolArgumentsError, ToolExecutionError, UnknownToolError
from toolloop.domain.models import ExecutableTool, Message, ToolApprovalCheck, ToolCall, ToolExecutionRecord, ToolFailure, ToolSuccess
from toolloop.observability import tool_execution_count, tool_execution_errors, tool_execution_retries, tool_execution_time

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CANCEL_TOKEN_PARAMETER = "cancel_token"


class ToolExecutionCoordinator:
    """Executes requested tool calls under a parallel/sequential policy with retries.

    The coordinator is stateless: one instance can serve any number of
    concurrent runs.

    Example:
        >>> coordinator = ToolExecutionCoordinator()
        >>> records = await coordinator.execute_all(calls, tools, ToolLoopConfig())
        >>> [r.is_success for r in records]
    """

    async def find_calls_needing_approval(
        self,
        calls: Sequence[ToolCall],
        messages: Sequence[Message],
        iteration: int,
        tool_approval_checks: Mapping[str, ToolApprovalCheck] | None = None,
        needs_approval: ToolApprovalCheck | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[ToolCall]:
        """Return the calls of a step that need approval before anything runs.

        A per-tool check takes precedence over ``needs_approval``; calls
        with neither never need approval. Checks may be sync or async.
        """
        if not tool_approval_checks and needs_approval is None:
            return []

        pending: list[ToolCall] = []
        for call in calls:
            check = (tool_approval_checks or {}).get(call.tool_name, needs_approval)
            if check is None:
                continue
            raise_if_cancelled(cancel_token)
            required = check(call, messages, iteration)
            if inspect.isawaitable(required):
                required = await required
            if required:
                pending.append(call)

        if pending:
            logger.info(f"🔧 Iteration {iteration}: {len(pending)} tool call(s) need approval: {[c.tool_name for c in pending]}")
        return pending

    async def execute_all(
        self,
        calls: Sequence[ToolCall],
        tools: Mapping[str, ExecutableTool],
        config: ToolLoopConfig,
        cancel_token: CancellationToken | None = None,
        iteration: int | None = None,
    ) -> list[ToolExecutionRecord]:
        """Execute every call of one step.

        Args:
            calls: Tool calls requested by the model, in request order
            tools: Registered tools keyed by name
            config: Loop configuration (parallelism, retry budget, unknown-tool policy)
            cancel_token: Cancellation signal checked before every attempt
            iteration: Step number, for diagnostics only

        Returns:
            One record per call, in the same order as ``calls``

        Raises:
            ToolExecutionError: A tool kept raising after its retry budget was spent
            UnknownToolError: A call names an unregistered tool and ``continue_on_error`` is False
            OperationCancelledError: Cancellation was requested
        """
        if not calls:
            return []

        if not config.continue_on_error:
            for call in calls:
                if call.tool_name not in tools:
                    logger.error(f"Unknown tool requested: {call.tool_name} (call {call.id})")
                    raise UnknownToolError(call.tool_name, call_id=call.id, iteration=iteration)

        with tracer.start_as_current_span("tool_loop.execute_tools") as span:
            span.set_attribute("tools.call_count", len(calls))
            span.set_attribute("tools.parallel", config.run_tools_in_parallel)
            if iteration is not None:
                span.set_attribute("agent.iteration", iteration)

            if config.run_tools_in_parallel and len(calls) > 1:
                return await self._execute_parallel(calls, tools, config.max_attempts, cancel_token)

            records: list[ToolExecutionRecord] = []
            for call in calls:
                records.append(await self._execute_call(call, tools.get(call.tool_name), config.max_attempts, cancel_token, raise_on_exhaustion=True))
            return records

    async def execute_batch(
        self,
        calls: Sequence[ToolCall],
        tools: Mapping[str, ExecutableTool],
        continue_on_error: bool,
        max_retries: int = 0,
        cancel_token: CancellationToken | None = None,
    ) -> list[ToolExecutionRecord]:
        """Execute calls sequentially, outside of an agent run.

        Unlike ``execute_all``, a tool that exhausts its retries produces an
        error record instead of raising.

        Args:
            calls: Tool calls to execute, in order
            tools: Registered tools keyed by name
            continue_on_error: Keep going after a failed call; when False the
                batch stops after the first failure
            max_retries: Extra attempts for tools that raise
            cancel_token: Cancellation signal checked before every attempt

        Returns:
            Records for every call attempted, in order. With ``continue_on_error``
            False this ends with the first failing call.
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got {max_retries}")

        records: list[ToolExecutionRecord] = []
        for call in calls:
            record = await self._execute_call(call, tools.get(call.tool_name), max_retries + 1, cancel_token, raise_on_exhaustion=False)
            records.append(record)
            if not record.is_success and not continue_on_error:
                logger.info(f"Batch stopped after failed call {call.id} ({call.tool_name}); {len(calls) - len(records)} call(s) skipped")
                break
        return records

    async def _execute_parallel(
        self,
        calls: Sequence[ToolCall],
        tools: Mapping[str, ExecutableTool],
        max_attempts: int,
        cancel_token: CancellationToken | None,
    ) -> list[ToolExecutionRecord]:
        # All calls settle before the first error is raised.
        outcomes = await asyncio.gather(
            *(self._execute_call(call, tools.get(call.tool_name), max_attempts, cancel_token, raise_on_exhaustion=True) for call in calls),
            return_exceptions=True,
        )
        records: list[ToolExecutionRecord] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            records.append(outcome)
        return records

    async def _execute_call(
        self,
        call: ToolCall,
        tool: ExecutableTool | None,
        max_attempts: int,
        cancel_token: CancellationToken | None,
        raise_on_exhaustion: bool,
    ) -> ToolExecutionRecord:
        if tool is None:
            logger.warning(f"🔧 Unknown tool requested: {call.tool_name} (call {call.id})")
            tool_execution_errors.add(1, {"tool_name": call.tool_name, "error_type": "unknown_tool"})
            return ToolExecutionRecord(
                call=call,
                outcome=ToolFailure(f"Unknown tool: {call.tool_name}", {"error_code": "unknown_tool"}),
                attempt_count=0,
            )

        try:
            arguments = call.arguments()
        except ToolArgumentsError as e:
            logger.warning(f"🔧 Invalid arguments for {call.tool_name}: {e.message}")
            tool_execution_errors.add(1, {"tool_name": call.tool_name, "error_type": "invalid_arguments"})
            return ToolExecutionRecord(
                call=call,
                outcome=ToolFailure(e.message, {"error_code": e.error_code, "arguments_json": call.arguments_json}),
                attempt_count=0,
            )

        start_time = time.time()
        attempts = 0
        last_error: Exception | None = None

        with tracer.start_as_current_span("tool_loop.execute_tool") as span:
            span.set_attribute("tool.name", call.tool_name)
            span.set_attribute("tool.call_id", call.id)

            while attempts < max_attempts:
                raise_if_cancelled(cancel_token)
                attempts += 1
                if attempts > 1:
                    tool_execution_retries.add(1, {"tool_name": call.tool_name})
                    logger.info(f"🔧 Retrying {call.tool_name} (attempt {attempts}/{max_attempts})")

                try:
                    value = await self._invoke(tool, arguments, cancel_token)
                except OperationCancelledError:
                    raise
                except Exception as e:
                    last_error = e
                    logger.warning(f"🔧 Tool {call.tool_name} raised on attempt {attempts}/{max_attempts}: {e}")
                    continue

                execution_time_ms = (time.time() - start_time) * 1000
                span.set_attribute("tool.attempts", attempts)
                tool_execution_count.add(1, {"tool_name": call.tool_name})
                tool_execution_time.record(execution_time_ms, {"tool_name": call.tool_name})

                if isinstance(value, ToolFailure):
                    logger.warning(f"🔧 Tool execution failed: {call.tool_name} - {value.message}")
                    tool_execution_errors.add(1, {"tool_name": call.tool_name, "error_type": "tool_failure"})
                    return ToolExecutionRecord(call=call, outcome=value, attempt_count=attempts, execution_time_ms=execution_time_ms)

                logger.info(f"🔧 Tool executed successfully: {call.tool_name} in {execution_time_ms:.2f}ms")
                return ToolExecutionRecord(call=call, outcome=ToolSuccess(value), attempt_count=attempts, execution_time_ms=execution_time_ms)

            execution_time_ms = (time.time() - start_time) * 1000
            span.set_attribute("tool.attempts", attempts)
            tool_execution_count.add(1, {"tool_name": call.tool_name})
            tool_execution_errors.add(1, {"tool_name": call.tool_name, "error_type": "retries_exhausted"})
            tool_execution_time.record(execution_time_ms, {"tool_name": call.tool_name})
            logger.error(f"🔧 Tool {call.tool_name} failed after {attempts} attempt(s): {last_error}")

            if raise_on_exhaustion:
                error = ToolExecutionError(call.tool_name, attempts, call_id=call.id, cause=last_error)
                span.record_exception(error)
                span.set_status(trace.StatusCode.ERROR, error.message)
                raise error from last_error

            return ToolExecutionRecord(
                call=call,
                outcome=ToolFailure(str(last_error), {"error_code": "tool_execution_error", "exception_type": type(last_error).__name__}),
                attempt_count=attempts,
                execution_time_ms=execution_time_ms,
            )

    @staticmethod
    async def _invoke(tool: ExecutableTool, arguments: dict[str, Any], cancel_token: CancellationToken | None) -> Any:
        kwargs: dict[str, Any] = {}
        if _accepts_cancel_token(tool):
            kwargs[CANCEL_TOKEN_PARAMETER] = cancel_token
        result = tool.execute(arguments, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result


def _accepts_cancel_token(tool: ExecutableTool) -> bool:
    try:
        parameters = inspect.signature(tool.execute).parameters
    except (TypeError, ValueError):
        return False
    return CANCEL_TOKEN_PARAMETER in parameters

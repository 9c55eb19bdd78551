"""Observability utilities and metrics for toolloop."""

from .metrics import (
    agent_iteration_limit_exceeded,
    agent_iterations,
    agent_run_time,
    agent_runs,
    agent_runs_blocked,
    model_calls,
    model_token_count,
    stream_parts_emitted,
    tool_execution_count,
    tool_execution_errors,
    tool_execution_retries,
    tool_execution_time,
)

__all__ = [
    # Agent metrics
    "agent_runs",
    "agent_run_time",
    "agent_iterations",
    "agent_iteration_limit_exceeded",
    "agent_runs_blocked",
    # Model metrics
    "model_calls",
    "model_token_count",
    # Tool metrics
    "tool_execution_count",
    "tool_execution_retries",
    "tool_execution_errors",
    "tool_execution_time",
    # Streaming metrics
    "stream_parts_emitted",
]

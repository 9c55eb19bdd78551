"""Business metrics for the tool loop.

Defines OpenTelemetry metrics for:
- Agent: Runs, iterations, iteration-limit hits
- Model: Calls and token usage
- Tools: Execution, retries, errors, latency
- Streaming: Reconstructed parts
"""

from opentelemetry import metrics

meter = metrics.get_meter("toolloop")

# =============================================================================
# AGENT METRICS
# =============================================================================

agent_runs = meter.create_counter(
    name="toolloop.agent.runs",
    description="Total agent runs started",
    unit="1",
)

agent_run_time = meter.create_histogram(
    name="toolloop.agent.run_time",
    description="Duration of agent runs (first model call to final result)",
    unit="ms",
)

agent_iterations = meter.create_histogram(
    name="toolloop.agent.iterations",
    description="Number of loop iterations per completed run",
    unit="1",
)

agent_iteration_limit_exceeded = meter.create_counter(
    name="toolloop.agent.iteration_limit_exceeded",
    description="Runs aborted because the iteration limit was reached with tools pending",
    unit="1",
)

agent_runs_blocked = meter.create_counter(
    name="toolloop.agent.runs_blocked",
    description="Runs paused because a tool call needed approval",
    unit="1",
)

# =============================================================================
# MODEL METRICS
# =============================================================================

model_calls = meter.create_counter(
    name="toolloop.model.calls",
    description="Total language model calls made by the loop",
    unit="1",
)

model_token_count = meter.create_histogram(
    name="toolloop.model.token_count",
    description="Total tokens reported per model call",
    unit="1",
)

# =============================================================================
# TOOL METRICS
# =============================================================================

tool_execution_count = meter.create_counter(
    name="toolloop.tools.execution_count",
    description="Total tool calls executed",
    unit="1",
)

tool_execution_retries = meter.create_counter(
    name="toolloop.tools.execution_retries",
    description="Tool attempts beyond the first",
    unit="1",
)

tool_execution_errors = meter.create_counter(
    name="toolloop.tools.execution_errors",
    description="Tool calls that ended in an error record or exception",
    unit="1",
)

tool_execution_time = meter.create_histogram(
    name="toolloop.tools.execution_time",
    description="Time to execute a tool call across all attempts",
    unit="ms",
)

# =============================================================================
# STREAMING METRICS
# =============================================================================

stream_parts_emitted = meter.create_counter(
    name="toolloop.streaming.parts_emitted",
    description="Stream parts produced by the delta reconstructor",
    unit="1",
)

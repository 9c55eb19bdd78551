"""Tool loop configuration.

This module defines the configuration dataclass controlling how the agent
loop bounds its iterations and how requested tools are executed.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToolLoopConfig:
    """Configuration for a tool-calling run.

    Attributes:
        max_iterations: Maximum number of model calls in a single run (prevents infinite loops)
        run_tools_in_parallel: Execute the tool calls of one step concurrently
        max_tool_retries: Extra attempts for a tool whose ``execute`` raises
        continue_on_error: Feed unknown-tool errors back to the model instead of aborting
    """

    # Iteration limits (safety bounds)
    max_iterations: int = 8

    # Tool execution policy
    run_tools_in_parallel: bool = False
    max_tool_retries: int = 0

    # Error handling
    continue_on_error: bool = True

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")
        if self.max_tool_retries < 0:
            raise ValueError(f"max_tool_retries must not be negative, got {self.max_tool_retries}")

    @property
    def max_attempts(self) -> int:
        """Total number of times a single tool call may be attempted."""
        return self.max_tool_retries + 1

    def with_max_iterations(self, max_iterations: int) -> "ToolLoopConfig":
        """Create a copy with different max iterations.

        Args:
            max_iterations: New max iterations

        Returns:
            New ToolLoopConfig instance
        """
        return ToolLoopConfig(
            max_iterations=max_iterations,
            run_tools_in_parallel=self.run_tools_in_parallel,
            max_tool_retries=self.max_tool_retries,
            continue_on_error=self.continue_on_error,
        )

    def with_parallel_tools(self, run_tools_in_parallel: bool = True) -> "ToolLoopConfig":
        """Create a copy with a different tool execution policy."""
        return ToolLoopConfig(
            max_iterations=self.max_iterations,
            run_tools_in_parallel=run_tools_in_parallel,
            max_tool_retries=self.max_tool_retries,
            continue_on_error=self.continue_on_error,
        )

    def with_max_tool_retries(self, max_tool_retries: int) -> "ToolLoopConfig":
        """Create a copy with a different retry budget."""
        return ToolLoopConfig(
            max_iterations=self.max_iterations,
            run_tools_in_parallel=self.run_tools_in_parallel,
            max_tool_retries=max_tool_retries,
            continue_on_error=self.continue_on_error,
        )

    @classmethod
    def default(cls) -> "ToolLoopConfig":
        """Create a default loop configuration."""
        return cls()

    @classmethod
    def single_shot(cls) -> "ToolLoopConfig":
        """Create a configuration that allows exactly one model call."""
        return cls(max_iterations=1)

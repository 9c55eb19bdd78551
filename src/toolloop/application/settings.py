"""Application settings configuration for toolloop."""

import logging
import sys

from neuroglia.hosting.abstractions import ApplicationSettings

from toolloop.application.agents.agent_config import ToolLoopConfig


class Settings(ApplicationSettings):
    """toolloop settings for the agent loop and its ambient services."""

    # Debugging Configuration
    log_level: str = "INFO"

    # Agent Loop Configuration
    agent_max_iterations: int = 8  # Maximum model calls per run
    agent_run_tools_in_parallel: bool = False
    agent_max_tool_retries: int = 0  # Extra attempts for tools that raise
    agent_continue_on_error: bool = True  # Feed unknown-tool errors back to the model

    # Structured Output Configuration
    structured_output_validate_schema: bool = True

    def to_loop_config(self) -> ToolLoopConfig:
        """Build the loop configuration described by these settings."""
        return ToolLoopConfig(
            max_iterations=self.agent_max_iterations,
            run_tools_in_parallel=self.agent_run_tools_in_parallel,
            max_tool_retries=self.agent_max_tool_retries,
            continue_on_error=self.agent_continue_on_error,
        )

    class Config:
        env_file = ".env"
        env_prefix = "TOOLLOOP_"  # All env vars prefixed with TOOLLOOP_
        case_sensitive = False
        extra = "ignore"


app_settings = Settings()


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party loggers
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)

"""Shared pytest fixtures for toolloop tests."""

import pytest

from tests.fixtures.factories import ConcurrencyTracker, ToolFactory
from toolloop.application.agents import ToolExecutionCoordinator, ToolLoopAgent, ToolLoopConfig


@pytest.fixture
def coordinator() -> ToolExecutionCoordinator:
    """Create a ToolExecutionCoordinator."""
    return ToolExecutionCoordinator()


@pytest.fixture
def agent() -> ToolLoopAgent:
    """Create a ToolLoopAgent with default configuration."""
    return ToolLoopAgent()


@pytest.fixture
def default_config() -> ToolLoopConfig:
    """Create the default loop configuration."""
    return ToolLoopConfig.default()


@pytest.fixture
def tracker() -> ConcurrencyTracker:
    """Create a concurrency tracker for sleeping tools."""
    return ConcurrencyTracker()


@pytest.fixture
def echo_tool():
    """Create a sync echo tool."""
    return ToolFactory.echo("echo")

"""Application layer for toolloop.

Contains:
- agents/: Language model contract, tool loop agent, tool execution, structured output
- streaming/: Reconstruction of stream parts from model events
- settings.py: Environment-driven configuration and logging setup
"""

"""MCP proxy that runs a remote orchestrator's tools against local resources."""

__version__ = "0.1.0"

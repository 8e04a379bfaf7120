"""Command-line interface for agent-session-porter."""

"""Shared error types and CLI rendering helpers for the plan engine."""

__all__ = [
    "exceptions",
    "plan_cli",
]

"""Escalation rule engine for property and compliance operations."""

__version__ = "0.1.0"

"""Shared helpers for git invocation and error logging."""

"""Shared helpers used across pipeline services."""

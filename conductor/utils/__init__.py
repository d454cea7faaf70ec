"""Logging and timer helpers shared across layers."""

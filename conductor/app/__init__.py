"""Application wiring: configuration, command router and runtime context."""

"""GUI-agnostic grid engine: nodes, provider contracts and services."""

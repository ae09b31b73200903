"""Process-level concerns: startup pull, status, health and quit."""

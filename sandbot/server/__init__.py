"""HTTP API for the SandBot dashboard."""

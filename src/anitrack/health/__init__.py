"""Data root and provider health checks."""

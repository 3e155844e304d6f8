"""Episode commands."""

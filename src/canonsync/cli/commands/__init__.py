"""Top-level canonsync commands (one module per command)."""

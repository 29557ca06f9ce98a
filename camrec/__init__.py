"""Multi-stream network video recorder with time-based segment files."""

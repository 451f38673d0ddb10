"""Session key and transcript helpers."""

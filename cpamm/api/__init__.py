"""HTTP host for a single pool."""

"""HTTP API for prompt-commons search."""

"""CLI tools for prompt-commons."""

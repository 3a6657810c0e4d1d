"""Errors raised by the search store."""


class SemanticSearchDisabledError(RuntimeError):
    """Raised when a vector operation is requested while semantic search is disabled."""


class SemanticDependenciesMissingError(RuntimeError):
    """Raised when the sqlite-vec extension cannot be imported or loaded."""

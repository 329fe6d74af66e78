"""Fast, best-effort duplicate file detection over large file populations."""

__version__ = "0.1.0"

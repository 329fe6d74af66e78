from __future__ import annotations


class HashError(Exception):
    """A single file could not be fingerprinted."""

    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"error hashing {path}: {cause}")


class LifecycleError(RuntimeError):
    """The analyser's submit/finish/extract protocol was violated."""

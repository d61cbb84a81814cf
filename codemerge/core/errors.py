"""
Error taxonomy for listing and reading files.

Structural errors (bad root, wrong path type) propagate to the caller.
Per-entry failures during traversal or batch reads are absorbed and logged
by the component that encounters them.
"""


class CodeMergeError(Exception):
    """Base class for all code-merge errors."""
    pass


class PathNotFoundError(CodeMergeError, FileNotFoundError):
    """Raised when a root or file path does not exist."""
    pass


class PathNotDirectoryError(CodeMergeError, NotADirectoryError):
    """Raised when a directory was expected but something else was found."""
    pass


class PathNotFileError(CodeMergeError):
    """Raised when a regular file was expected but something else was found."""
    pass


class AccessDeniedError(CodeMergeError, PermissionError):
    """Raised when the root itself cannot be read."""
    pass


class ReadFailureError(CodeMergeError):
    """Raised when a single file cannot be read or decoded."""

    def __init__(self, path, reason):
        super().__init__(f"Failed to read {path}: {reason}")
        self.path = path
        self.reason = reason


class QueueClearedError(CodeMergeError):
    """Settles queued tasks that were dropped by ConcurrencyLimiter.clear()."""
    pass


class InvalidArgumentError(CodeMergeError, ValueError):
    """Raised when a call cannot even start because its arguments are invalid."""
    pass

"""
LC-3 Virtual Machine — Exception Types

Library code raises these; only the CLI turns them into exit statuses.
"""


class LC3Error(Exception):
    """Base class for all lc3vm errors."""


class ImageLoadError(LC3Error):
    """An object image could not be read or placed into memory."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ConsoleEOF(LC3Error):
    """A blocking console read found no more input."""

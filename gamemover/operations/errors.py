"""Exceptions raised by tree transfer operations."""

from typing import Optional


class TransferError(Exception):
    """A tree transfer failed with an I/O or permission error.

    Attributes:
        cause: The underlying OSError, if any.
        source_vacated: True when the failure happened after the source tree
            started being removed (or was renamed away), meaning the original
            location no longer holds a complete installation.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[OSError] = None,
        source_vacated: bool = False,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.source_vacated = source_vacated


class TransferCancelled(Exception):
    """The fallback copy stopped because its cancel token was set.

    The destination may be partially populated; the source is untouched.
    """

    def __init__(self, processed_bytes: int = 0, total_bytes: int = 0) -> None:
        super().__init__(
            f"Transfer cancelled after {processed_bytes} of {total_bytes} bytes"
        )
        self.processed_bytes = processed_bytes
        self.total_bytes = total_bytes

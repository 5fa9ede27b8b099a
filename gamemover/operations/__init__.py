"""Tree transfer package for the relocation engine.

This package provides the TreeTransfer class for moving an installation tree,
together with the CancelToken used to stop a fallback copy and the exceptions
a transfer can raise.

Example:
    >>> from gamemover.operations import CancelToken, TreeTransfer
    >>> token = CancelToken()
    >>> method = TreeTransfer().transfer(source, dest, on_progress=print, cancel_token=token)
    >>> print(method.value)
"""

from .cancellation import CancelToken
from .errors import TransferCancelled, TransferError
from .tree_transfer import ProgressCallback, TreeTransfer

__all__ = [
    "CancelToken",
    "ProgressCallback",
    "TransferCancelled",
    "TransferError",
    "TreeTransfer",
]

# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Error taxonomy for script resolution.

Every fatal outcome of a resolution is a ResolutionError subclass.
A missing virtual view is not an error: open_virtual_view() returns None.
"""

from typing import Optional


class ResolutionError(Exception):
    """Base class for all resolution failures."""

    pass


class MissingFileError(ResolutionError):
    """Raised when a configured file does not exist in the revision or workspace."""

    pass


class PathEscapeError(ResolutionError):
    """Raised when a configured path resolves outside the checkout directory."""

    pass


class OfflineNodeError(ResolutionError):
    """Raised when the node or its workspace root is unavailable."""

    pass


class NotARunError(ResolutionError):
    """Raised when the owner cannot host a checkout."""

    pass


class MaxRetriesExceededError(ResolutionError):
    """Raised once when every checkout attempt has failed."""

    def __init__(self, attempts: int):
        super().__init__("Maximum checkout retry attempts reached, aborting")
        self.attempts = attempts


class CheckoutAbortError(ResolutionError):
    """Recoverable checkout failure reported by a source control.

    The message is optional; an abort without one is retried silently.
    """

    def __init__(self, message: Optional[str] = None):
        args = (message,) if message is not None else ()
        super().__init__(*args)
        self.message = message


class CheckoutCancelledError(ResolutionError):
    """Checkout was interrupted while blocked on I/O. Never retried."""

    pass


class UnreadableFileError(ResolutionError):
    """Raised when a configured file exists but cannot be read as UTF-8 text."""

    pass

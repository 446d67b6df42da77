# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Source control capabilities consumed by the resolver.

A SourceControl can always materialize a revision into a directory. It may
also offer a read-only virtual view of the revision; open_virtual_view()
returns None when it cannot.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, Optional, Protocol

from scmscript.schemas import SourceReference

if TYPE_CHECKING:
    from scmscript.schemas import RunContext


class VirtualView(Protocol):
    """Read-only, non-materializing access to one revision."""

    def read_file(self, path: str) -> str:
        """Return the file's text.

        Raises:
            FileNotFoundError: If path does not exist in the revision.
        """
        ...

    def close(self) -> None:
        ...


class SourceControl(Protocol):
    """Checkout and virtual-read capabilities for one source reference."""

    reference: SourceReference

    def checkout(self, run_context: "RunContext", target: Path) -> None:
        """Materialize the revision into target.

        Raises:
            CheckoutAbortError: Recoverable failure, safe to retry.
            CheckoutCancelledError: Interrupted; must not be retried.
        """
        ...

    def open_virtual_view(self, run_context: "RunContext") -> Optional[VirtualView]:
        ...


_FACTORIES: Dict[str, Callable[[SourceReference], SourceControl]] = {}


def register(kind: str, factory: Callable[[SourceReference], SourceControl]) -> None:
    """Register the SourceControl factory for a reference kind."""
    _FACTORIES[kind] = factory


def source_control_for(reference: SourceReference) -> SourceControl:
    """Build the SourceControl for a reference.

    Raises:
        ValueError: If no implementation is registered for reference.kind.
    """
    factory = _FACTORIES.get(reference.kind)
    if factory is None:
        known = ", ".join(sorted(_FACTORIES)) or "none"
        raise ValueError(f"Unsupported source kind: {reference.kind} (known: {known})")
    return factory(reference)


from scmscript.scm.git import GitSourceControl  # noqa: E402

register("git", GitSourceControl)

__all__ = [
    "SourceControl",
    "VirtualView",
    "GitSourceControl",
    "register",
    "source_control_for",
]

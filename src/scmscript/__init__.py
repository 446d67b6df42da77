# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Resolve pipeline scripts stored in source control."""

__version__ = "0.1.0"

from scmscript.errors import (
    CheckoutAbortError,
    CheckoutCancelledError,
    MaxRetriesExceededError,
    MissingFileError,
    NotARunError,
    OfflineNodeError,
    PathEscapeError,
    ResolutionError,
    UnreadableFileError,
)
from scmscript.resolver import resolve, resolve_script
from scmscript.schemas import ResolvedScript, RunContext, ScmFlowDefinition, SourceReference

__all__ = [
    "__version__",
    "resolve",
    "resolve_script",
    "SourceReference",
    "ScmFlowDefinition",
    "RunContext",
    "ResolvedScript",
    "ResolutionError",
    "MissingFileError",
    "PathEscapeError",
    "OfflineNodeError",
    "NotARunError",
    "MaxRetriesExceededError",
    "CheckoutAbortError",
    "CheckoutCancelledError",
    "UnreadableFileError",
]

# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Resolution schemas."""

from scmscript.schemas.definition import (
    ResolvedScript,
    RunContext,
    ScmFlowDefinition,
    SourceReference,
)

__all__ = [
    "SourceReference",
    "ScmFlowDefinition",
    "RunContext",
    "ResolvedScript",
]

# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Definition, run context and result schemas.

Follows the resolution flow:
- ScmFlowDefinition (configured once per pipeline) + RunContext (per run)
  → resolve → ResolvedScript
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional

from scmscript.durability import DurabilityHint

if TYPE_CHECKING:
    from scmscript.event_client import EventClient


@dataclass(frozen=True)
class SourceReference:
    """Opaque handle to a source control location.

    kind selects the SourceControl implementation (currently only "git").
    """

    url: str
    revision: str = "HEAD"
    kind: str = "git"
    credentials_id: Optional[str] = None

    @property
    def key(self) -> str:
        """Identity used in progress messages, e.g. 'git https://host/repo.git'."""
        return f"{self.kind} {self.url}"


@dataclass
class ScmFlowDefinition:
    """A pipeline definition whose script lives in source control.

    script_path and import_path are trimmed on construction. An empty string
    means "not configured". lightweight is the only field callers flip after
    construction.
    """

    source: SourceReference
    script_path: str
    import_path: str = ""
    lightweight: bool = False

    def __post_init__(self):
        self.script_path = (self.script_path or "").strip()
        self.import_path = (self.import_path or "").strip()

    def create(self, run_context: "RunContext", **kwargs) -> "ResolvedScript":
        """Resolve this definition for one run.

        Keyword arguments (settings, source_control, workspaces, sleep) are
        passed through to scmscript.resolver.resolve.
        """
        from scmscript.resolver import resolve

        return resolve(self, run_context, **kwargs)


@dataclass
class RunContext:
    """Per-execution state read by the resolver.

    job_name is the owning job's identity; None means the owner is not a
    top-level job and the run's own root_dir is used as the workspace.
    """

    run_id: str
    job_name: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    workspace_root: Optional[Path] = None
    root_dir: Optional[Path] = None
    node_name: str = "built-in"
    node_online: bool = True
    is_run: bool = True
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("scmscript.build"))
    cancel_event: threading.Event = field(default_factory=threading.Event)
    event_client: Optional["EventClient"] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


@dataclass(frozen=True)
class ResolvedScript:
    """The resolved script text plus where its files physically live.

    backing_directory is set only when a full checkout happened.
    """

    text: str
    backing_directory: Optional[Path] = None
    durability_hint: DurabilityHint = DurabilityHint.MAX_SURVIVABILITY
    sandbox: bool = True

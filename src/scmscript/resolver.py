# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Resolver - produce the script text of an SCM-backed pipeline definition.

Two ways to get the files:
- lightweight: read them through a virtual view of the revision
- full checkout: lease the workspace directory, check out with retries,
  then read from disk after a containment check

Both assemble the text the same way, so the result does not reveal which
path produced it.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple

from scmscript.config import ResolverSettings
from scmscript.durability import DurabilityHint, suggested_for
from scmscript.errors import (
    CheckoutAbortError,
    CheckoutCancelledError,
    MaxRetriesExceededError,
    MissingFileError,
    NotARunError,
    OfflineNodeError,
    UnreadableFileError,
)
from scmscript.event_client import ResolutionEvents
from scmscript.expand import expand_path_template
from scmscript.paths import decode_script, ensure_contained
from scmscript.schemas import ResolvedScript, RunContext, ScmFlowDefinition, SourceReference
from scmscript.scm import SourceControl, source_control_for
from scmscript.workspace import WORKSPACES, WorkspaceList

logger = logging.getLogger(__name__)

# Appended to "<job><suffix>" to name the checkout directory
WORKSPACE_DIR_NAME = "script"


# =============================================================================
# Script Assembly
# =============================================================================

def assemble(import_text: Optional[str], main_text: Optional[str]) -> str:
    """
    Concatenate import and main script text.

    None means "not configured". A configured import is always followed by
    a blank line, even when no main script follows.

    Example:
        >>> assemble("echo 'lib'", "echo 'main'")
        "echo 'lib'\\n\\necho 'main'"
    """
    script = ""
    if import_text is not None:
        script += import_text + "\n\n"
    if main_text is not None:
        script += main_text
    return script


# =============================================================================
# Lightweight Resolution
# =============================================================================

class LightweightStatus(Enum):
    RESOLVED = "resolved"
    DECLINED = "declined"
    FAILED = "failed"


@dataclass(frozen=True)
class LightweightOutcome:
    """Result of a lightweight attempt. text is set only when RESOLVED."""

    status: LightweightStatus
    text: Optional[str] = None
    error: Optional[MissingFileError] = None


DECLINED = LightweightOutcome(LightweightStatus.DECLINED)


def try_lightweight(
    definition: ScmFlowDefinition,
    scm: SourceControl,
    run_context: RunContext,
    script_path: str,
    import_path: str,
) -> LightweightOutcome:
    """
    Read the script files through a virtual view, without a checkout.

    Declines when lightweight mode is off or the source control offers no
    virtual view. A missing file fails with both configured paths named,
    since the view cannot tell which one was absent.
    """
    if not definition.lightweight:
        return DECLINED

    view = scm.open_virtual_view(run_context)
    if view is None:
        run_context.logger.info("Lightweight checkout support not available, falling back to full checkout.")
        return DECLINED

    key = definition.source.key
    try:
        import_text = None
        main_text = None
        if import_path:
            import_text = view.read_file(import_path)
            run_context.logger.info(f"Obtained import file {import_path} from {key}")
        if script_path:
            main_text = view.read_file(script_path)
            run_context.logger.info(f"Obtained script file {script_path} from {key}")
    except FileNotFoundError:
        error = MissingFileError(f"Unable to find [{script_path}] or [{import_path}] from {key}")
        return LightweightOutcome(LightweightStatus.FAILED, error=error)
    finally:
        view.close()

    return LightweightOutcome(LightweightStatus.RESOLVED, text=assemble(import_text, main_text))


# =============================================================================
# Full Checkout
# =============================================================================

def checkout_with_retry(
    scm: SourceControl,
    run_context: RunContext,
    target: Path,
    max_retries: int,
    delay_s: float = 10.0,
    sleep: Optional[Callable[[float], None]] = None,
) -> int:
    """
    Check out into target, retrying recoverable failures.

    Makes at most max_retries + 1 attempts with a fixed delay between them.
    Abort-class failures are logged by message; anything else is logged
    with its traceback. Cancellation propagates immediately with no further
    attempt and no delay.

    Args:
        max_retries: Retries after the first attempt (0 = single attempt).
        delay_s: Backoff between attempts.
        sleep: Backoff function; defaults to waiting on the run's cancel event.

    Returns:
        Number of attempts made.

    Raises:
        CheckoutCancelledError: If the checkout or the backoff is cancelled.
        MaxRetriesExceededError: If every attempt failed.
    """
    attempts = 0
    remaining = max_retries
    last_error: Optional[BaseException] = None
    while True:
        attempts += 1
        try:
            scm.checkout(run_context, target)
            return attempts
        except CheckoutCancelledError:
            raise
        except CheckoutAbortError as e:
            # abort may carry no message; then there is nothing to echo
            if e.message is not None:
                run_context.logger.error(e.message)
            last_error = e
        except Exception as e:
            run_context.logger.exception("Checkout failed")
            last_error = e

        if remaining == 0:
            raise MaxRetriesExceededError(attempts) from last_error

        run_context.logger.info(f"Retrying after {delay_s:g} seconds")
        if sleep is not None:
            sleep(delay_s)
        elif run_context.cancel_event.wait(delay_s):
            raise CheckoutCancelledError("Cancelled during checkout retry backoff")
        remaining -= 1


def workspace_dir_for(run_context: RunContext, settings: ResolverSettings) -> Path:
    """
    Derive the checkout directory for a run.

    Top-level jobs check out into "<workspace_root>/<job><suffix>script";
    otherwise the run's own root directory is used.

    Raises:
        OfflineNodeError: If the node is offline or has no workspace root.
        NotARunError: If there is neither an owning job nor a run directory.
    """
    if not run_context.node_online:
        raise OfflineNodeError(f"{run_context.node_name} may be offline")

    if run_context.job_name is not None:
        if run_context.workspace_root is None:
            raise OfflineNodeError(f"{run_context.node_name} may be offline")
        name = f"{run_context.job_name}{settings.workspace_suffix}{WORKSPACE_DIR_NAME}"
        return Path(run_context.workspace_root) / name

    if run_context.root_dir is None:
        raise NotARunError(f"run {run_context.run_id} has no root directory to check out into")
    return Path(run_context.root_dir)


def _read_checked_out(file: Path, kind: str) -> str:
    if not file.is_file():
        raise MissingFileError(f"{kind} file {file} not found")
    try:
        data = file.read_bytes()
    except OSError as e:
        raise UnreadableFileError(f"{kind} file {file} could not be read: {e}") from e
    return decode_script(data, file, kind)


def _resolve_full_checkout(
    definition: ScmFlowDefinition,
    scm: SourceControl,
    run_context: RunContext,
    settings: ResolverSettings,
    workspaces: WorkspaceList,
    script_path: str,
    import_path: str,
    hint: DurabilityHint,
    sleep: Optional[Callable[[float], None]],
) -> Tuple[ResolvedScript, int]:
    directory = workspace_dir_for(run_context, settings)
    key = definition.source.key
    for path in (import_path, script_path):
        if path:
            run_context.logger.info(f"Checking out {key} into {directory} to read {path}")

    with workspaces.acquire(directory, run_context.cancel_event) as lease:
        attempts = checkout_with_retry(
            scm,
            run_context,
            lease.path,
            settings.checkout_retry_count,
            delay_s=settings.retry_delay_s,
            sleep=sleep,
        )

        # Check every path before reading any file
        import_file = ensure_contained(lease.path, import_path, "import") if import_path else None
        script_file = ensure_contained(lease.path, script_path, "script") if script_path else None

        import_text = _read_checked_out(import_file, "import") if import_file is not None else None
        main_text = _read_checked_out(script_file, "script") if script_file is not None else None
        backing_directory = lease.path

    script = ResolvedScript(
        text=assemble(import_text, main_text),
        backing_directory=backing_directory,
        durability_hint=hint,
    )
    return script, attempts


# =============================================================================
# Resolution Driver
# =============================================================================

def resolve(
    definition: ScmFlowDefinition,
    run_context: RunContext,
    settings: Optional[ResolverSettings] = None,
    source_control: Optional[SourceControl] = None,
    workspaces: Optional[WorkspaceList] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> ResolvedScript:
    """
    Resolve the script text for one pipeline run.

    Tries the lightweight path first when enabled; on decline falls back to
    a full checkout under a workspace lease. A file missing from the virtual
    view is fatal and not retried.

    Args:
        definition: Source reference and configured paths.
        run_context: Environment and identity of the run.
        settings: Retry, workspace and durability settings (defaults if None).
        source_control: Overrides the implementation chosen by source kind.
        workspaces: Lease manager (process-wide default if None).
        sleep: Backoff function for retries (see checkout_with_retry).

    Returns:
        ResolvedScript; backing_directory is set only after a full checkout.

    Raises:
        ResolutionError: Any fatal failure, after the lease is released.
    """
    settings = settings or ResolverSettings()
    workspaces = workspaces or WORKSPACES

    if not run_context.is_run:
        raise NotARunError("can only check out SCM into a run")

    scm = source_control or source_control_for(definition.source)
    script_path = expand_path_template(definition.script_path, run_context.env)
    import_path = expand_path_template(definition.import_path, run_context.env)
    hint = suggested_for(run_context.job_name, settings.durability_providers, settings.default_durability)

    events = ResolutionEvents(run_context.event_client, definition.source.key, run_context.run_id)
    events.started(script_path, import_path)
    try:
        outcome = try_lightweight(definition, scm, run_context, script_path, import_path)
        if outcome.status == LightweightStatus.FAILED:
            raise outcome.error
        if outcome.status == LightweightStatus.RESOLVED:
            events.completed("lightweight")
            return ResolvedScript(text=outcome.text, durability_hint=hint)

        script, attempts = _resolve_full_checkout(
            definition,
            scm,
            run_context,
            settings,
            workspaces,
            script_path,
            import_path,
            hint,
            sleep,
        )
    except Exception as e:
        logger.debug(f"Resolution of {definition.source.key} failed: {e}")
        events.failed(e)
        raise

    events.completed("checkout", script.backing_directory, attempts)
    return script


def resolve_script(
    source: SourceReference,
    script_path: str,
    import_path: str,
    lightweight: bool,
    run_context: RunContext,
    **kwargs,
) -> ResolvedScript:
    """Build a definition from its parts and resolve it."""
    definition = ScmFlowDefinition(
        source=source,
        script_path=script_path,
        import_path=import_path,
        lightweight=lightweight,
    )
    return resolve(definition, run_context, **kwargs)

# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""JSONL event logging for script resolutions."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


class EventClient:
    """Append-only JSONL event log."""

    def __init__(self, log_path: Path):
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log_event(
        self,
        event_type: str,
        correlation_id: str,
        status: str,
        payload: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> None:
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "correlation_id": correlation_id,
            "status": status,
        }
        if payload:
            event["payload"] = payload
        if error_message:
            event["error_message"] = error_message

        with open(self.log_path, "a") as f:
            f.write(json.dumps(event, default=str) + "\n")

    def read_events(self, correlation_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Read logged events, optionally filtered to one resolution."""
        if not self.log_path.exists():
            return []
        events = []
        for line in self.log_path.read_text().splitlines():
            if not line.strip():
                continue
            event = json.loads(line)
            if correlation_id is None or event.get("correlation_id") == correlation_id:
                events.append(event)
        return events


class ResolutionEvents:
    """Emits the started/completed/failed events of one resolution.

    A no-op when the run has no event client attached.
    """

    def __init__(self, client: Optional[EventClient], source_key: str, run_id: str):
        self.client = client
        self.source_key = source_key
        self.run_id = run_id
        self.correlation_id = str(uuid.uuid4())

    def _log(self, event_type: str, status: str, payload: Dict[str, Any], error_message: Optional[str] = None):
        if self.client is None:
            return
        payload = {"source": self.source_key, "run_id": self.run_id, **payload}
        self.client.log_event(
            event_type=event_type,
            correlation_id=self.correlation_id,
            status=status,
            payload=payload,
            error_message=error_message,
        )

    def started(self, script_path: str, import_path: str) -> None:
        self._log(
            "resolution.started",
            "running",
            {"script_path": script_path, "import_path": import_path},
        )

    def completed(self, mode: str, backing_directory: Optional[Path] = None, attempts: int = 0) -> None:
        payload: Dict[str, Any] = {"mode": mode, "attempts": attempts}
        if backing_directory is not None:
            payload["backing_directory"] = str(backing_directory)
        self._log("resolution.completed", "succeeded", payload)

    def failed(self, error: BaseException) -> None:
        self._log(
            "resolution.failed",
            "failed",
            {"error_type": type(error).__name__},
            error_message=str(error) or type(error).__name__,
        )

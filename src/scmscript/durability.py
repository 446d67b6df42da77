# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Durability hints attached to a resolved script.

Consulted once per resolution to tag the execution; never changes what
gets resolved.
"""

from enum import Enum
from typing import Dict, Iterable, Optional, Protocol


class DurabilityHint(Enum):
    """How aggressively the execution engine persists pipeline state.

    MAX_SURVIVABILITY: persist everything, slowest
    SURVIVABLE_NONATOMIC: persist at checkpoints, may lose a step on crash
    PERFORMANCE_OPTIMIZED: persist only on clean shutdown
    """

    MAX_SURVIVABILITY = "max_survivability"
    SURVIVABLE_NONATOMIC = "survivable_nonatomic"
    PERFORMANCE_OPTIMIZED = "performance_optimized"

    @classmethod
    def parse(cls, value: str) -> "DurabilityHint":
        """Parse a hint from its value or name, case-insensitively.

        Raises:
            ValueError: If value names no known hint.
        """
        normalized = value.strip().lower().replace("-", "_")
        for hint in cls:
            if hint.value == normalized:
                return hint
        raise ValueError(f"Unknown durability hint: {value}")


class DurabilityHintProvider(Protocol):
    """Suggests a hint for a job, or None to defer to the next provider."""

    def suggested_for(self, job_name: str) -> Optional[DurabilityHint]:
        ...


class JobDurabilityHints:
    """Provider backed by an explicit job name -> hint mapping."""

    def __init__(self, hints: Optional[Dict[str, DurabilityHint]] = None):
        self.hints = dict(hints or {})

    def suggested_for(self, job_name: str) -> Optional[DurabilityHint]:
        return self.hints.get(job_name)


def suggested_for(
    job_name: Optional[str],
    providers: Iterable[DurabilityHintProvider],
    default: DurabilityHint,
) -> DurabilityHint:
    """Return the first provider's hint for job_name, else default.

    A run without an owning job always gets the default.
    """
    if job_name is None:
        return default
    for provider in providers:
        hint = provider.suggested_for(job_name)
        if hint is not None:
            return hint
    return default

# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Placeholder expansion for configured script paths.

Expands $VAR and ${VAR} against the run environment. Unknown placeholders
are left verbatim.
"""

import logging
import re
from typing import Dict

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\$(?:\{([^}]+)\}|([A-Za-z_][A-Za-z0-9_]*))")


def expand_path_template(raw: str, env: Dict[str, str]) -> str:
    """
    Substitute environment placeholders in a configured path.

    Args:
        raw: Path template, e.g. "pipelines/${BRANCH}/Jenkinsfile"
        env: Run environment bindings

    Returns:
        Expanded path

    Example:
        >>> expand_path_template("ci/$STAGE.groovy", {"STAGE": "build"})
        'ci/build.groovy'
        >>> expand_path_template("ci/${MISSING}/x", {})
        'ci/${MISSING}/x'
    """
    if "$" not in raw:
        return raw

    unresolved = []

    def _replace(match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        if name in env:
            return str(env[name])
        unresolved.append(name)
        return match.group(0)

    result = PLACEHOLDER_PATTERN.sub(_replace, raw)
    if unresolved:
        logger.debug(f"Unresolved placeholders in {raw!r}: {unresolved}")
    return result

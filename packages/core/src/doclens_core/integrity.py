"""Validation of improved content before it replaces the original.

Integrity is binary: a result either passes every check or is rejected as a
whole. Nothing is written for a rejected result.
"""

from __future__ import annotations

import logging
import re

from doclens_core.errors import IntegrityRejectedError

logger = logging.getLogger(__name__)

MIN_LENGTH_RATIO = 0.3

# Markers a model leaves behind when it ran out of output tokens or
# summarized instead of rewriting.
_TRUNCATION_PATTERNS = [
    re.compile(r"\[Content truncated[^\]]*\]", re.IGNORECASE),
    re.compile(r"\[Content continues\.\.\.\]", re.IGNORECASE),
    re.compile(r"\[Continue with remaining sections[^\]]*\]", re.IGNORECASE),
    re.compile(r"\[Remaining content[^\]]*\]", re.IGNORECASE),
    re.compile(r"\[The rest of the content[^\]]*\]", re.IGNORECASE),
    re.compile(r"\[Content shortened for brevity[^\]]*\]", re.IGNORECASE),
]

# Commentary about the rewrite rather than the rewrite itself.
_PREAMBLE_PATTERN = re.compile(
    r"^\s*(?:(?:Here's|Here is) (?:the|an?) improved|I(?:'ve| have) (?:improved|enhanced|updated)|"
    r"(?:Below is|The following is) the improved)",
    re.IGNORECASE,
)


def find_violations(original: str, improved: str) -> list[str]:
    """Return every reason ``improved`` may not replace ``original``."""
    if not improved or not improved.strip():
        return ["assessor returned empty content"]

    violations = []
    if improved == original:
        violations.append("improved content is identical to the original")
    if len(improved) < MIN_LENGTH_RATIO * len(original):
        violations.append(
            f"improved content is {len(improved)} chars, under {MIN_LENGTH_RATIO:.0%} "
            f"of the original {len(original)} chars"
        )
    for pattern in _TRUNCATION_PATTERNS:
        match = pattern.search(improved)
        if match:
            violations.append(f"truncation marker found: {match.group(0)!r}")
    if _PREAMBLE_PATTERN.match(improved):
        violations.append("improved content starts with assistant commentary")
    return violations


def validate_improvement(original: str, improved: str) -> None:
    """Raise IntegrityRejectedError if ``improved`` fails any check."""
    violations = find_violations(original, improved)
    if violations:
        logger.warning("Rejected improved content: %s", "; ".join(violations))
        raise IntegrityRejectedError(violations)

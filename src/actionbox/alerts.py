"""
Violation formatting and alert dispatch.

Formatters turn Violations into text for logs, chat or terminals.
ViolationAlerter sends them to a logger at a level matching their severity,
and ViolationLog keeps the most recent ones in memory for status output.
"""

import json
import logging
import threading
from collections import deque
from collections.abc import Iterable

from actionbox.schema import Severity, Violation

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 20
ALERT_PREFIX = "[ActionBox]"

_SEVERITY_ORDER = (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW)

_SEVERITY_EMOJI = {
    Severity.CRITICAL: ":red_circle:",
    Severity.HIGH: ":orange_circle:",
    Severity.MEDIUM: ":yellow_circle:",
    Severity.LOW: ":white_circle:",
}

_SEVERITY_LOG_LEVEL = {
    Severity.CRITICAL: logging.ERROR,
    Severity.HIGH: logging.WARNING,
}


# =============================================================================
# Formatters
# =============================================================================


def format_plain_text(violation: Violation) -> str:
    return "\n".join(
        [
            f"[{violation.severity.value.upper()}] {violation.type.value}",
            f"Skill: {violation.skill_id}",
            f"Tool: {violation.tool_name}",
            f"Message: {violation.message}",
            f"Rule: {violation.rule}",
            f"Time: {violation.timestamp.isoformat()}",
        ]
    )


def format_markdown(violation: Violation) -> str:
    lines = [
        f"### {_SEVERITY_EMOJI[violation.severity]} ActionBox Violation: "
        f"{violation.severity.value.upper()}",
        "",
        f"**Type:** `{violation.type.value}`",
        f"**Skill:** `{violation.skill_id}`",
        f"**Tool:** `{violation.tool_name}`",
        f"**Message:** {violation.message}",
        f"**Rule:** `{violation.rule}`",
        f"**Time:** {violation.timestamp.isoformat()}",
    ]
    if violation.details:
        lines.append(f"**Details:** `{json.dumps(violation.details, default=str)}`")
    return "\n".join(lines)


def format_violation_summary(violations: list[Violation]) -> str:
    """One header line plus a count per severity present."""
    if not violations:
        return "No violations detected."

    lines = [f"ActionBox detected {len(violations)} violation(s):"]
    for severity in _SEVERITY_ORDER:
        count = sum(1 for v in violations if v.severity == severity)
        if count:
            lines.append(f"  {severity.value.upper()}: {count}")
    return "\n".join(lines)


# =============================================================================
# Recent Violations
# =============================================================================


class ViolationLog:
    """Thread-safe ring buffer of the most recent violations."""

    def __init__(self, limit: int = DEFAULT_RECENT_LIMIT) -> None:
        if limit <= 0:
            msg = f"limit must be positive, got {limit}"
            raise ValueError(msg)
        self._entries: deque[Violation] = deque(maxlen=limit)
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._entries.maxlen or 0

    def record(self, violation: Violation) -> None:
        with self._lock:
            self._entries.append(violation)

    def record_many(self, violations: Iterable[Violation]) -> None:
        with self._lock:
            self._entries.extend(violations)

    def recent(self, n: int | None = None) -> list[Violation]:
        """Newest last. With n, only the last n entries."""
        with self._lock:
            entries = list(self._entries)
        if n is not None:
            return entries[-n:] if n > 0 else []
        return entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# =============================================================================
# Alerter
# =============================================================================


class ViolationAlerter:
    """
    Dispatches violation and drift alerts to a logger.

    Critical violations log at ERROR, high at WARNING, everything else at
    INFO. When a ViolationLog is given, every alerted violation is recorded
    in it.
    """

    def __init__(
        self,
        alert_logger: logging.Logger | None = None,
        violation_log: ViolationLog | None = None,
    ) -> None:
        self._logger = alert_logger or logger
        self._log = violation_log

    def alert_violation(self, violation: Violation) -> None:
        level = _SEVERITY_LOG_LEVEL.get(violation.severity, logging.INFO)
        self._logger.log(level, "%s %s", ALERT_PREFIX, format_plain_text(violation))
        if self._log is not None:
            self._log.record(violation)

    def alert_violations(self, violations: list[Violation]) -> None:
        if not violations:
            return
        self._logger.warning("%s %s", ALERT_PREFIX, format_violation_summary(violations))
        for violation in violations:
            self.alert_violation(violation)

    def alert_drift(self, skill_id: str, current_hash: str, expected_hash: str) -> None:
        self._logger.warning(
            '%s Drift detected for skill "%s". Expected hash: %s..., current: %s... '
            'Regenerate the contract, then run "actionbox review %s".',
            ALERT_PREFIX,
            skill_id,
            expected_hash[:12],
            current_hash[:12],
            skill_id,
        )

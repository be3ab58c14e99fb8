"""
JSON output for ActionBox results.

Design Principles:
    - Consistent schema: same keys whether or not violations were found
    - Human-readable keys: snake_case names
    - ISO timestamps
"""

import json
from datetime import UTC, datetime
from typing import Any

from actionbox.contract.audit import SkillAudit
from actionbox.policy.builder import GlobalPolicy
from actionbox.schema import EnforcementMode, Violation


def serialize_violation(violation: Violation) -> dict[str, Any]:
    return violation.model_dump(mode="json")


def build_check_dict(
    tool_name: str,
    params: dict[str, Any],
    violations: list[Violation],
    mode: EnforcementMode,
    blocked: bool,
    block_reason: str | None,
) -> dict[str, Any]:
    """Build the result of checking one tool call."""
    return {
        "report_version": "1.0",
        "generated_at": datetime.now(UTC).isoformat(),
        "tool_name": tool_name,
        "params": params,
        "mode": mode.value,
        "blocked": blocked,
        "block_reason": block_reason,
        "violation_count": len(violations),
        "violations": [serialize_violation(v) for v in violations],
    }


def build_policy_dict(policy: GlobalPolicy) -> dict[str, Any]:
    """Build a serializable view of the merged policy."""
    return {
        "skills": list(policy.boxes),
        "tool_index": {name: list(skills) for name, skills in policy.tool_index.items()},
        "global_denied_tools": {
            name: {"reason": entry.reason, "denying_skills": list(entry.denying_skill_ids)}
            for name, entry in policy.global_denied_tools.items()
        },
        "global_denied_paths": list(policy.global_denied_paths),
        "global_denied_hosts": list(policy.global_denied_hosts),
        "allowed_capabilities": list(policy.all_allowed_capabilities),
        "denied_capabilities": list(policy.all_denied_capabilities),
    }


def build_audit_list(rows: list[SkillAudit]) -> list[dict[str, Any]]:
    return [
        {
            "skill": row.skill,
            "has_box": row.has_box,
            "reviewed": row.reviewed,
            "drift": row.drift,
            "allowed_tools": row.allowed_tools,
            "denied_tools": row.denied_tools,
            "error": row.error,
        }
        for row in rows
    ]


def to_json(data: Any, indent: int = 2) -> str:
    return json.dumps(data, indent=indent, default=_json_serializer)


def _json_serializer(obj: Any) -> Any:
    """Custom JSON serializer for non-standard types."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")

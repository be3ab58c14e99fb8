"""
Reporting for ActionBox.

Output formats:
    - Console: Rich tables for violations, the merged policy, audits and
      contract review
    - JSON: Structured output for programmatic consumption

Example:
    from actionbox.report import render_violations, build_check_dict

    render_violations(violations)
    data = build_check_dict("read_file", params, violations, mode, False, None)
"""

from actionbox.report.console import (
    render_audit,
    render_block_decision,
    render_policy,
    render_review,
    render_violations,
)
from actionbox.report.json import (
    build_audit_list,
    build_check_dict,
    build_policy_dict,
    serialize_violation,
    to_json,
)

__all__ = [
    "build_audit_list",
    "build_check_dict",
    "build_policy_dict",
    "render_audit",
    "render_block_decision",
    "render_policy",
    "render_review",
    "render_violations",
    "serialize_violation",
    "to_json",
]

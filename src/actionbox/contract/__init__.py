"""
Contract files: loading, saving, discovery and drift detection.
"""

from actionbox.contract.audit import SkillAudit, audit_skill, audit_skills
from actionbox.contract.loader import (
    ACTIONBOX_FILENAME,
    SKILL_FILENAME,
    action_box_path,
    check_drift,
    compute_hash,
    discover_skill_dirs,
    load_action_box,
    mark_reviewed,
    parse_action_box,
    read_skill_md,
    save_action_box,
    serialize_action_box,
    skill_md_path,
)

__all__ = [
    "SkillAudit",
    "ACTIONBOX_FILENAME",
    "SKILL_FILENAME",
    "action_box_path",
    "audit_skill",
    "audit_skills",
    "check_drift",
    "compute_hash",
    "discover_skill_dirs",
    "load_action_box",
    "mark_reviewed",
    "parse_action_box",
    "read_skill_md",
    "save_action_box",
    "serialize_action_box",
    "skill_md_path",
]

"""
Contract coverage audit across a skills directory.
"""

from dataclasses import dataclass
from pathlib import Path

from actionbox.contract.loader import (
    action_box_path,
    compute_hash,
    discover_skill_dirs,
    load_action_box,
    read_skill_md,
)
from actionbox.errors import ContractError


@dataclass(frozen=True)
class SkillAudit:
    """
    Audit status of one skill directory.

    Attributes:
        skill: Directory name
        has_box: ACTIONBOX.md exists and is valid
        reviewed: Contract has been marked reviewed
        drift: SKILL.md no longer matches the recorded hash (or is unreadable)
        allowed_tools: Number of allowed tools
        denied_tools: Number of denied tools
        error: Why the contract couldn't be loaded, if it exists but is invalid
    """

    skill: str
    has_box: bool = False
    reviewed: bool = False
    drift: bool = False
    allowed_tools: int = 0
    denied_tools: int = 0
    error: str | None = None


def audit_skill(skill_dir: Path | str) -> SkillAudit:
    skill_dir = Path(skill_dir)
    if not action_box_path(skill_dir).is_file():
        return SkillAudit(skill=skill_dir.name)

    try:
        box = load_action_box(skill_dir)
    except ContractError as e:
        return SkillAudit(skill=skill_dir.name, error=e.message)

    try:
        drift = compute_hash(read_skill_md(skill_dir)) != box.drift.skill_hash
    except (OSError, UnicodeDecodeError):
        drift = True

    return SkillAudit(
        skill=skill_dir.name,
        has_box=True,
        reviewed=box.drift.reviewed,
        drift=drift,
        allowed_tools=len(box.allowed_tools),
        denied_tools=len(box.denied_tools),
    )


def audit_skills(skills_dir: Path | str) -> list[SkillAudit]:
    """Audit every skill directory under a skills root, sorted by name."""
    return [audit_skill(d) for d in discover_skill_dirs(skills_dir)]

"""
Reading and writing ACTIONBOX.md contracts.

A contract file is markdown with the contract itself in a YAML block fenced
by '---' lines. Anything before the first fence (normally a title) is
ignored on read:

    # ActionBox: Calendar Helper

    ---
    version: "1.0"
    skillId: calendar-helper
    allowedTools:
      - name: read_file
        reason: Reads cached events
    ...
    ---

Keys are camelCase on disk and snake_case in Python.

Drift detection compares the SHA-256 of the skill's current SKILL.md with
the hash recorded in the contract when it was generated.
"""

import hashlib
import logging
from datetime import UTC, datetime
from pathlib import Path

import yaml
from pydantic import ValidationError

from actionbox.errors import (
    ContractNotFoundError,
    ContractParseError,
    ContractValidationError,
)
from actionbox.schema import ActionBox, DriftStatus

logger = logging.getLogger(__name__)

ACTIONBOX_FILENAME = "ACTIONBOX.md"
SKILL_FILENAME = "SKILL.md"

_FENCE = "---"


# =============================================================================
# Paths
# =============================================================================


def action_box_path(skill_dir: Path | str) -> Path:
    return Path(skill_dir) / ACTIONBOX_FILENAME


def skill_md_path(skill_dir: Path | str) -> Path:
    return Path(skill_dir) / SKILL_FILENAME


def discover_skill_dirs(skills_dir: Path | str) -> list[Path]:
    """
    Find skill directories under a skills root.

    A skill directory is a direct child containing SKILL.md. A missing root
    yields an empty list.
    """
    root = Path(skills_dir)
    if not root.is_dir():
        return []
    return sorted(
        child
        for child in root.iterdir()
        if child.is_dir() and (child / SKILL_FILENAME).is_file()
    )


# =============================================================================
# Parsing / Serialization
# =============================================================================


def _extract_yaml_block(text: str) -> str | None:
    lines = text.splitlines()
    fences = [i for i, line in enumerate(lines) if line.rstrip() == _FENCE]
    if len(fences) < 2:
        return None
    start, end = fences[0], fences[1]
    return "\n".join(lines[start + 1 : end])


def parse_action_box(text: str, path: str = "") -> ActionBox:
    """
    Parse ACTIONBOX.md content into a validated ActionBox.

    Args:
        text: Full file content
        path: Source path, used only in error messages

    Raises:
        ContractParseError: No fenced YAML block, or the YAML is malformed
        ContractValidationError: The YAML doesn't match the contract schema
    """
    block = _extract_yaml_block(text)
    if block is None:
        raise ContractParseError(path=path, parse_error="No '---' fenced YAML block found")

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise ContractParseError(path=path, parse_error=f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ContractParseError(path=path, parse_error="YAML block must be a mapping")

    try:
        return ActionBox.model_validate(data)
    except ValidationError as e:
        raise ContractValidationError(path=path, validation_error=str(e)) from e


def serialize_action_box(box: ActionBox) -> str:
    """Render a contract in the on-disk ACTIONBOX.md format."""
    title = box.skill_name or box.skill_id
    body = yaml.safe_dump(
        box.to_yaml_dict(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"# ActionBox: {title}\n\n{_FENCE}\n{body}{_FENCE}\n"


def load_action_box(skill_dir: Path | str) -> ActionBox:
    """
    Load the contract of a skill directory.

    Raises:
        ContractNotFoundError: The directory has no ACTIONBOX.md
        ContractParseError: The file is not UTF-8 or cannot be parsed
        ContractValidationError: The contract is invalid
    """
    path = action_box_path(skill_dir)
    if not path.is_file():
        raise ContractNotFoundError(path=str(path))
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ContractParseError(path=str(path), parse_error="File is not valid UTF-8") from e
    return parse_action_box(text, path=str(path))


def save_action_box(skill_dir: Path | str, box: ActionBox) -> Path:
    """Write a contract to <skill_dir>/ACTIONBOX.md and return the path."""
    path = action_box_path(skill_dir)
    path.write_text(serialize_action_box(box), encoding="utf-8")
    logger.debug("Wrote contract for %s to %s", box.skill_id, path)
    return path


# =============================================================================
# Drift & Review
# =============================================================================


def compute_hash(content: str) -> str:
    """SHA-256 hex digest of UTF-8 text."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def read_skill_md(skill_dir: Path | str) -> str:
    # bytes, so line endings are hashed exactly as stored
    return skill_md_path(skill_dir).read_bytes().decode("utf-8")


def check_drift(skill_dir: Path | str) -> DriftStatus | None:
    """
    Compare a skill's SKILL.md with the hash recorded in its contract.

    Returns:
        DriftStatus, or None when SKILL.md or the contract is missing, the
        contract can't be loaded or SKILL.md can't be read as UTF-8
    """
    skill_dir = Path(skill_dir)
    if not skill_md_path(skill_dir).is_file() or not action_box_path(skill_dir).is_file():
        return None

    try:
        box = load_action_box(skill_dir)
    except (ContractParseError, ContractValidationError) as e:
        logger.warning("Skipping drift check for %s: %s", skill_dir.name, e.message)
        return None

    try:
        current = compute_hash(read_skill_md(skill_dir))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(
            "Skipping drift check for %s: cannot read %s: %s", skill_dir.name, SKILL_FILENAME, e
        )
        return None

    expected = box.drift.skill_hash
    return DriftStatus(
        skill_id=box.skill_id,
        has_drift=current != expected,
        current_hash=current,
        expected_hash=expected,
    )


def mark_reviewed(box: ActionBox, reviewer: str) -> ActionBox:
    """Return a copy of the contract marked as reviewed by `reviewer`."""
    drift = box.drift.model_copy(
        update={
            "reviewed": True,
            "reviewed_by": reviewer,
            "reviewed_at": datetime.now(UTC).isoformat(),
        }
    )
    return box.model_copy(update={"drift": drift})

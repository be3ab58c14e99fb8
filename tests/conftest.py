"""
Pytest configuration and fixtures for ActionBox tests.

This module provides shared fixtures used across unit and integration tests.
"""

import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, Generator

import pytest

from actionbox.contract import compute_hash, save_action_box
from actionbox.schema import ActionBox


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_box() -> Callable[..., ActionBox]:
    """Factory for contracts: make_box("skill-id", allowed_tools=[...], ...)."""

    def _make(skill_id: str, **kwargs: Any) -> ActionBox:
        kwargs.setdefault("skill_name", skill_id.replace("-", " ").title())
        return ActionBox(skill_id=skill_id, **kwargs)

    return _make


@pytest.fixture
def file_reader_box(make_box: Callable[..., ActionBox]) -> ActionBox:
    """A contract that may read ./data and must never run shell commands."""
    return make_box(
        "file-reader",
        allowed_tools=[{"name": "read_file", "reason": "Reads input data"}],
        denied_tools=[{"name": "shell_exec", "reason": "No shell access"}],
        filesystem={"readable": ["./data/**"]},
        behavior={"summary": "Reads data files", "never_do": ["Run shell commands"]},
    )


@pytest.fixture
def web_box(make_box: Callable[..., ActionBox]) -> ActionBox:
    """A contract that may fetch from Slack's API but never from evil.com."""
    return make_box(
        "web-fetcher",
        allowed_tools=[{"name": "web_fetch", "reason": "Calls Slack"}],
        network={"allowed_hosts": ["*.slack.com"], "denied_hosts": ["evil.com"]},
    )


SKILL_MD = """---
name: {name}
description: Test skill
---
# {name}

Does things.
"""


def _write_skill(
    skills_dir: Path,
    box: ActionBox,
    skill_md: str | None = None,
    with_box: bool = True,
) -> Path:
    """Create <skills_dir>/<skill_id>/ with SKILL.md and (optionally) ACTIONBOX.md."""
    skill_dir = skills_dir / box.skill_id
    skill_dir.mkdir(parents=True, exist_ok=True)
    content = skill_md if skill_md is not None else SKILL_MD.format(name=box.skill_id)
    (skill_dir / "SKILL.md").write_text(content, encoding="utf-8")
    if with_box:
        drift = box.drift.model_copy(update={"skill_hash": compute_hash(content)})
        save_action_box(skill_dir, box.model_copy(update={"drift": drift}))
    return skill_dir


@pytest.fixture
def write_skill() -> Callable[..., Path]:
    """Helper that writes a skill directory: write_skill(root, box, skill_md=None, with_box=True)."""
    return _write_skill


@pytest.fixture
def skills_dir(temp_dir: Path, file_reader_box: ActionBox, web_box: ActionBox) -> Path:
    """A skills root holding the file-reader and web-fetcher skills."""
    root = temp_dir / "skills"
    _write_skill(root, file_reader_box)
    _write_skill(root, web_box)
    return root

"""
Integration tests for the report module.

Tests cover:
- JSON dicts for check results, the merged policy and audits
- Console rendering of violations, policy, audits and reviews
"""

import json
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from actionbox.contract import audit_skills, mark_reviewed
from actionbox.enforcer import ActionBoxEnforcer
from actionbox.report import (
    build_audit_list,
    build_check_dict,
    build_policy_dict,
    render_audit,
    render_block_decision,
    render_policy,
    render_review,
    render_violations,
    to_json,
)
from actionbox.schema import ActionBox, EnforcementMode


def make_console() -> tuple[Console, StringIO]:
    buffer = StringIO()
    return Console(file=buffer, width=120, force_terminal=False, no_color=True), buffer


@pytest.fixture
def enforcer(skills_dir: Path) -> ActionBoxEnforcer:
    enforcer = ActionBoxEnforcer(EnforcementMode.ENFORCE)
    enforcer.load_skills_dir(skills_dir)
    return enforcer


class TestJsonReport:
    """Tests for JSON output."""

    def test_check_dict(self, enforcer: ActionBoxEnforcer) -> None:
        params = {"path": "/etc/passwd"}
        violations = enforcer.check("read_file", params)
        report = build_check_dict(
            "read_file",
            params,
            violations,
            enforcer.mode,
            enforcer.should_block(violations),
            enforcer.block_reason(violations),
        )

        assert report["report_version"] == "1.0"
        assert "generated_at" in report
        assert report["mode"] == "enforce"
        assert report["blocked"] is True
        assert report["block_reason"].startswith("[ActionBox] ")
        assert report["violation_count"] == 1
        assert report["violations"][0]["type"] == "filesystem_read_violation"

    def test_check_dict_is_json(self, enforcer: ActionBoxEnforcer) -> None:
        violations = enforcer.check("shell_exec")
        text = to_json(
            build_check_dict("shell_exec", {}, violations, enforcer.mode, True, None)
        )
        data = json.loads(text)
        assert isinstance(data["violations"][0]["timestamp"], str)

    def test_clean_check_keeps_schema(self, enforcer: ActionBoxEnforcer) -> None:
        report = build_check_dict(
            "read_file", {}, [], enforcer.mode, False, None
        )
        assert report["violations"] == []
        assert report["violation_count"] == 0
        assert report["block_reason"] is None

    def test_policy_dict(self, enforcer: ActionBoxEnforcer) -> None:
        data = build_policy_dict(enforcer.policy)
        assert data["skills"] == ["file-reader", "web-fetcher"]
        assert data["global_denied_tools"] == {
            "shell_exec": {"reason": "No shell access", "denying_skills": ["file-reader"]}
        }
        assert data["global_denied_paths"] == []
        assert data["allowed_capabilities"] == []

    def test_audit_list(self, skills_dir: Path) -> None:
        rows = build_audit_list(audit_skills(skills_dir))
        assert rows[0] == {
            "skill": "file-reader",
            "has_box": True,
            "reviewed": False,
            "drift": False,
            "allowed_tools": 1,
            "denied_tools": 1,
            "error": None,
        }


class TestConsoleReport:
    """Tests for Rich console output."""

    def test_no_violations(self) -> None:
        console, buffer = make_console()
        render_violations([], console=console, tool_name="read_file")
        assert "No violations for read_file" in buffer.getvalue()

    def test_violation_table(self, enforcer: ActionBoxEnforcer) -> None:
        console, buffer = make_console()
        render_violations(enforcer.check("shell_exec"), console=console)
        output = buffer.getvalue()
        assert "critical" in output
        assert "denied_tool" in output

    def test_block_decision_keeps_prefix(self) -> None:
        console, buffer = make_console()
        render_block_decision(True, "[ActionBox] nope", console=console)
        assert "Blocked: [ActionBox] nope" in buffer.getvalue()

    def test_monitor_decision(self) -> None:
        console, buffer = make_console()
        render_block_decision(False, "[ActionBox] nope", console=console)
        assert "Monitor mode" in buffer.getvalue()

    def test_policy(self, enforcer: ActionBoxEnforcer) -> None:
        console, buffer = make_console()
        render_policy(enforcer.policy, console=console)
        output = buffer.getvalue()
        assert "2 contract(s)" in output
        assert "Globally denied tools" in output
        assert "evil.com" in output

    def test_audit(self, skills_dir: Path) -> None:
        console, buffer = make_console()
        render_audit(audit_skills(skills_dir), console=console)
        output = buffer.getvalue()
        assert "file-reader" in output
        assert "2 skill(s) not yet reviewed." in output

    def test_audit_empty(self) -> None:
        console, buffer = make_console()
        render_audit([], console=console)
        assert "No skills found." in buffer.getvalue()

    def test_review(self, file_reader_box: ActionBox) -> None:
        console, buffer = make_console()
        render_review(mark_reviewed(file_reader_box, "alice"), console=console)
        output = buffer.getvalue()
        assert "File Reader" in output
        assert "yes (by alice)" in output
        assert "+ read_file: Reads input data" in output
        assert "- shell_exec: No shell access" in output
